"""
Imaging app.

Pillow-backed image optimization and brand palette extraction for intake
assets.
"""
