"""
Microsite HTML Pages
====================

Server-rendered store locator pages. Each renderer takes the plain dict
produced by MicrositeService and returns a full HTML document.

ARCHITECTURAL DECISION:
    f-string templates with one SHARED_CSS block, no template engine. The
    brand's primary/accent colors are injected as CSS variables so every
    brand gets its own look from the same markup.
"""

from html import escape
from urllib.parse import urlencode

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


# ══════════════════════════════════════════════════════════════════
#  SHARED CSS
# ══════════════════════════════════════════════════════════════════

SHARED_CSS = """
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700;800&display=swap');

    :root {
        --bg: #f7f8fc;
        --bg-card: #ffffff;
        --border: rgba(15,23,42,0.08);
        --text: #0f172a;
        --text-muted: #64748b;
    }

    * { margin: 0; padding: 0; box-sizing: border-box; }

    body {
        font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
        background: var(--bg);
        color: var(--text);
        min-height: 100vh;
    }

    @keyframes fadeInUp {
        from { opacity: 0; transform: translateY(16px); }
        to   { opacity: 1; transform: translateY(0); }
    }

    .container { max-width: 1100px; margin: 0 auto; padding: 24px; }

    header.hero {
        background: var(--primary);
        color: #fff;
        padding: 48px 24px;
    }
    header.hero h1 { font-size: 34px; font-weight: 800; }
    header.hero p { opacity: 0.85; margin-top: 8px; }
    header.hero img.logo { max-height: 56px; margin-bottom: 16px; }

    .card {
        background: var(--bg-card);
        border: 1px solid var(--border);
        border-radius: 14px;
        padding: 24px;
        animation: fadeInUp 0.4s ease-out both;
    }

    .grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(300px, 1fr)); gap: 18px; }

    .btn {
        background: var(--accent);
        color: #fff;
        border: none;
        padding: 11px 22px;
        border-radius: 10px;
        font-weight: 600;
        font-size: 14px;
        cursor: pointer;
        text-decoration: none;
        display: inline-flex;
        font-family: inherit;
    }
    .btn:hover { opacity: 0.9; }

    input, select, textarea {
        border: 1px solid var(--border);
        padding: 11px 14px;
        border-radius: 10px;
        font-size: 14px;
        font-family: inherit;
        width: 100%;
        background: #fff;
    }
    textarea { min-height: 110px; resize: vertical; }

    .muted { color: var(--text-muted); font-size: 13px; }
    .stars { color: #f59e0b; letter-spacing: 2px; }
    .alert { padding: 12px 18px; border-radius: 10px; margin-top: 12px; font-size: 14px; display: none; }
    .alert-success { background: rgba(52,211,153,0.12); color: #047857; }
    .alert-error { background: rgba(248,113,113,0.12); color: #b91c1c; }

    a { color: var(--primary); text-decoration: none; }
"""


def _head(seo: dict, branding: dict) -> str:
    og = seo.get("open_graph") or {}
    og_images = "".join(
        f'<meta property="og:image" content="{escape(url)}">' for url in og.get("images", [])
    )
    return f"""<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(seo.get("title", ""))}</title>
    <meta name="description" content="{escape(seo.get("description", ""))}">
    <meta name="keywords" content="{escape(seo.get("keywords", ""))}">
    <meta property="og:title" content="{escape(og.get("title", ""))}">
    <meta property="og:description" content="{escape(og.get("description", ""))}">
    <meta property="og:type" content="{escape(og.get("type", "website"))}">
    {og_images}
    <style>
        {SHARED_CSS}
        :root {{
            --primary: {escape(branding.get("primary_color") or "#2962FF")};
            --accent: {escape(branding.get("accent_color") or "#FF9100")};
        }}
    </style>
</head>"""


def _address_line(address: dict) -> str:
    parts = [address.get("line1"), address.get("line2"), address.get("city"),
             address.get("state"), address.get("postal_code")]
    return ", ".join(escape(part) for part in parts if part)


def _stars(rating) -> str:
    rating = int(round(rating or 0))
    return "★" * rating + "☆" * (5 - rating)


def _hero(brand: dict, subtitle: str) -> str:
    logo = (brand.get("logo") or {}).get("url")
    logo_html = f'<img class="logo" src="{escape(logo)}" alt="{escape(brand["name"])}">' if logo else ""
    return f"""<header class="hero">
    <div class="container">
        {logo_html}
        <h1>{escape(brand["name"])}</h1>
        <p>{escape(subtitle)}</p>
    </div>
</header>"""


# ══════════════════════════════════════════════════════════════════
#  PAGE RENDERERS
# ══════════════════════════════════════════════════════════════════

def render_brand_page(data: dict) -> str:
    """Store locator grid with search/city/state filters and pagination."""
    brand, filters, paging = data["brand"], data["filters"], data["pagination"]

    cards = ""
    for i, store in enumerate(data["stores"]):
        phone = f'<div class="muted">{escape(store["phone"])}</div>' if store.get("phone") else ""
        cards += f"""
        <div class="card" style="animation-delay: {0.05 * i:.2f}s;">
            <h3><a href="/{escape(brand["slug"])}/stores/{escape(store["slug"])}">{escape(store["name"])}</a></h3>
            <p class="muted" style="margin-top: 6px;">{_address_line(store.get("address") or {})}</p>
            {phone}
        </div>"""
    if not cards:
        cards = '<p class="muted">No stores match your search.</p>'

    nav = ""
    for label, target, enabled in (("Previous", paging["page"] - 1, paging["has_prev_page"]),
                                   ("Next", paging["page"] + 1, paging["has_next_page"])):
        if enabled:
            query = urlencode({**filters, "page": target})
            nav += f'<a class="btn" href="/{escape(brand["slug"])}?{escape(query)}">{label}</a> '

    return f"""<!DOCTYPE html>
<html lang="en">
{_head(data["seo"], brand.get("branding") or {})}
<body>
{_hero(brand, brand.get("description") or "Find a store near you")}
<main class="container">
    <form method="get" action="/{escape(brand["slug"])}" class="card" style="display: flex; gap: 12px; margin-bottom: 24px;">
        <input type="text" name="search" placeholder="Search stores" value="{escape(filters["search"])}">
        <input type="text" name="city" placeholder="City" value="{escape(filters["city"])}">
        <input type="text" name="state" placeholder="State" value="{escape(filters["state"])}">
        <button type="submit" class="btn">Search</button>
    </form>
    <p class="muted" style="margin-bottom: 16px;">{paging["total"]} stores</p>
    <div class="grid">{cards}
    </div>
    <div style="margin-top: 24px;">{nav}</div>
</main>
</body>
</html>"""


def _hours_rows(hours: dict) -> str:
    rows = ""
    for day in WEEKDAYS:
        entry = hours.get(day)
        if not isinstance(entry, dict):
            continue
        if entry.get("is_open"):
            value = f'{escape(entry.get("open_time", ""))} - {escape(entry.get("close_time", ""))}'
        else:
            value = "Closed"
        rows += f"<tr><td>{day.title()}</td><td>{value}</td></tr>"
    return rows


def render_store_page(data: dict) -> str:
    """Store details, hours, map link, latest reviews and the enquiry form."""
    brand, store = data["brand"], data["store"]
    microsite = store.get("microsite") or {}

    details = f'<p>{_address_line(store.get("address") or {})}</p>'
    if store.get("phone"):
        details += f'<p class="muted">Phone: {escape(store["phone"])}</p>'
    if store.get("email") and store["email"] != "N/A":
        details += f'<p class="muted">Email: {escape(store["email"])}</p>'
    if microsite.get("maps_url"):
        details += f'<p style="margin-top: 12px;"><a class="btn" href="{escape(microsite["maps_url"])}" target="_blank" rel="noopener">Get directions</a></p>'

    hours = _hours_rows(store.get("hours_of_operation") or {})
    hours_html = f'<table style="width: 100%;">{hours}</table>' if hours else '<p class="muted">Hours not available</p>'

    reviews = ""
    for review in data["reviews"]:
        reviewer = (review.get("reviewer") or {}).get("display_name") or "Customer"
        reviews += f"""
        <div style="padding: 14px 0; border-bottom: 1px solid var(--border);">
            <div><strong>{escape(reviewer)}</strong> <span class="stars">{_stars(review.get("star_rating"))}</span></div>
            <p style="margin-top: 6px;">{escape(review.get("comment") or "")}</p>
        </div>"""
    if not reviews:
        reviews = '<p class="muted">No reviews yet.</p>'

    return f"""<!DOCTYPE html>
<html lang="en">
{_head(data["seo"], brand.get("branding") or {})}
<body>
{_hero(brand, store["name"])}
<main class="container" style="display: grid; gap: 18px;">
    <p><a href="/{escape(brand["slug"])}">&larr; All {escape(brand["name"])} stores</a></p>
    <div class="grid">
        <div class="card">
            <h2>{escape(store["name"])}</h2>
            {details}
        </div>
        <div class="card">
            <h3>Hours</h3>
            {hours_html}
        </div>
    </div>

    <div class="card">
        <h3>Reviews</h3>
        <p class="muted"><span class="stars">{_stars(data["average_rating"])}</span>
            {data["average_rating"]} average from {data["review_count"]} reviews</p>
        {reviews}
    </div>

    <div class="card">
        <h3>Send an enquiry</h3>
        <form id="enquiry-form" style="display: grid; gap: 12px; margin-top: 12px;">
            <input type="text" name="name" placeholder="Your name" required>
            <input type="email" name="email" placeholder="Email" required>
            <input type="text" name="phone" placeholder="Phone (optional)">
            <input type="text" name="subject" placeholder="Subject">
            <select name="enquiry_type">
                <option value="general">General</option>
                <option value="product">Product</option>
                <option value="service">Service</option>
                <option value="complaint">Complaint</option>
                <option value="feedback">Feedback</option>
                <option value="partnership">Partnership</option>
            </select>
            <textarea name="message" placeholder="Message" required></textarea>
            <button type="submit" class="btn">Send</button>
        </form>
        <div id="enquiry-ok" class="alert alert-success">Thanks! We'll get back to you soon.</div>
        <div id="enquiry-error" class="alert alert-error"></div>
    </div>
</main>
<script>
document.getElementById("enquiry-form").addEventListener("submit", async (event) => {{
    event.preventDefault();
    const body = Object.fromEntries(new FormData(event.target));
    body.store_id = {int(store["id"])};
    body.brand_id = {int(brand["id"])};
    const res = await fetch("/api/enquiries", {{
        method: "POST",
        headers: {{ "Content-Type": "application/json" }},
        body: JSON.stringify(body),
    }});
    const json = await res.json();
    const error = document.getElementById("enquiry-error");
    if (json.success) {{
        event.target.reset();
        error.style.display = "none";
        document.getElementById("enquiry-ok").style.display = "block";
    }} else {{
        error.textContent = json.error || "Something went wrong";
        error.style.display = "block";
    }}
}});
</script>
</body>
</html>"""


def render_not_found(message: str = "Page not found") -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Not Found</title>
    <style>
        {SHARED_CSS}
        :root {{ --primary: #2962FF; --accent: #FF9100; }}
        body {{ display: flex; justify-content: center; align-items: center; }}
    </style>
</head>
<body>
    <div class="card" style="text-align: center; max-width: 420px;">
        <h1>404</h1>
        <p class="muted" style="margin-top: 8px;">{escape(message)}</p>
    </div>
</body>
</html>"""
