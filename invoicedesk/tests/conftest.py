"""Shared test configuration: in-memory backends, no real credentials."""

import os

os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("INVOICEDESK_USE_IN_MEMORY_BACKENDS", "true")
os.environ.setdefault("INVOICE_BACKEND", "database")
os.environ.setdefault("STATIC_DIR", "__no_static_dir__")
