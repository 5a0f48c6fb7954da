"""
InvoiceFlow - Services Package

Business logic layer. Services take an AsyncSession, return None for
missing rows and raise ValueError when a rule is broken.
"""
