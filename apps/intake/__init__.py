"""
Intake app.

Stores business intake requests and their uploaded assets. A record moves
through pending → generating → generated; only the generation pipeline
changes its status.
"""
