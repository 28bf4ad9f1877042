"""
Synthesis app.

Content synthesizers turn a business payload into site copy (hero, about,
services, testimonials, call to action).
"""
