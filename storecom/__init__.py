# StoreCom Dashboard - Multi-Brand Local Business Platform
# ==========================================================
# Brands, stores, reviews and posts for local businesses, kept in sync with
# Google Business Profile (GMB), plus public store microsites.
#
# ARCHITECTURE LAYERS:
# - Presentation:   FastAPI routes and HTML pages (web/)
# - Application:    Use cases and orchestration (GMB sync, sentiment workflow)
# - Domain:         Pure business rules (permissions, slugs, rollups, stats)
# - Infrastructure: External services (SQLite, Google APIs, OpenRouter, spreadsheets)
#
# Infrastructure components can be swapped without touching the domain layer
# (e.g., SQLite for another store, or OpenRouter for another LLM).

__version__ = "1.0.0"
