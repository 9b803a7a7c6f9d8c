# Presentation Layer
# ==================
# FastAPI JSON API (routes/), shared dependencies (deps.py), request models
# (schemas.py) and the server-rendered microsite pages (pages.py).
