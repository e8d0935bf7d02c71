"""
SiteBooks services.

The calculation modules (tax_year, money, mileage, invoicing, reconciliation,
tax_summary) are pure and take plain values. The *_service modules wrap them
with the database reads and writes they need.
"""
