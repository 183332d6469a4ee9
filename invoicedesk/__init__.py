"""
InvoiceDesk backend package.

A FastAPI service that signs users in against a Google Sheets user list,
keeps a server-held session and records submitted invoices in a SQL
database or a spreadsheet.
"""
