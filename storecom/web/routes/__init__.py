# API routers, one module per resource.
# microsites must be included last: its /{brand_slug} pages match any path.
