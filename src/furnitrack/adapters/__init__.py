"""Adapters binding the tracker ports to SQLAlchemy and the Airtable REST API."""
