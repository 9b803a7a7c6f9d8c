# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - config/: Environment and settings management
# - persistence/: SQLite repository for brands, stores, reviews, posts, ...
# - gmb/: Google OAuth token lifecycle and Business Profile API client
# - llm/: OpenRouter LLM sentiment analysis and reply drafting
# - importer/: Spreadsheet (Excel/CSV) store import
# - security/: Password hashing and session tokens
#
# This layer can be replaced entirely without affecting domain/application layers.
