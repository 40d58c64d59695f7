DEFAULT_SOURCES = [
    # Trade press
    {
        "name": "ESG Today",
        "kind": "feed",
        "seed_urls": ["https://www.esgtoday.com/feed/"],
    },
    {
        "name": "GreenBiz",
        "kind": "feed",
        "seed_urls": ["https://www.greenbiz.com/rss.xml"],
    },
    {
        "name": "Environmental Leader",
        "kind": "feed",
        "seed_urls": ["https://www.environmentalleader.com/feed/"],
    },
    # Corporate sustainability
    {
        "name": "Triple Pundit",
        "kind": "feed",
        "seed_urls": ["https://www.triplepundit.com/feed/"],
    },
    {
        "name": "Sustainable Brands",
        "kind": "feed",
        "seed_urls": ["https://sustainablebrands.com/rss/news"],
    },
]
