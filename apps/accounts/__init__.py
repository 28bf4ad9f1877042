"""
Accounts app.

Issues one login principal per contact address for generated sites.
"""
