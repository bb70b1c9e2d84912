"""Mortgage rate quoting against the QuickPricer loan-origination engine."""
