"""Multi-tenant ticketing backend: venues, acts, shows and ticket offer allocation."""
