"""
Notify app.

Delivers "site ready" notices to the customer and the team through
pluggable drivers (SMTP email, JSON webhook).
"""
