"""HTML and plain-text rendering for digests."""

from datetime import datetime
from html import escape
from typing import Optional

from build_digest.models import DigestArticle, DigestTopic

TopicGroups = list[tuple[DigestTopic, list[DigestArticle]]]

HTML_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; color: #292524; background-color: #F2F7F4; }
    h1 { color: #365146; border-bottom: 3px solid #54816F; padding-bottom: 10px; }
    h2 { color: #365146; margin-top: 32px; }
    .article { background: #FFFFFF; padding: 20px; margin: 20px 0; border-radius: 12px; border: 1px solid #E1ECE6; }
    .article h3 { margin: 0 0 8px 0; }
    .article h3 a { color: #365146; text-decoration: none; font-weight: 600; }
    .topic-badge { display: inline-block; background: #E1ECE6; color: #365146; font-size: 0.75em; padding: 4px 10px; border-radius: 12px; font-weight: 600; margin-right: 6px; }
    .meta { color: #78716c; font-size: 0.85em; margin: 12px 0; text-transform: uppercase; }
    .bullets { margin: 12px 0; padding-left: 20px; color: #44403c; line-height: 1.6; }
    .why-it-matters { background: #E1ECE6; padding: 15px; border-radius: 8px; font-style: italic; color: #365146; border-left: 4px solid #54816F; }
    .why-it-matters strong { color: #292524; font-style: normal; }
"""


def format_date(value: datetime) -> str:
    """Format as e.g. 'Jan 1, 2024'."""
    return f"{value:%b} {value.day}, {value.year}"


def format_date_range(start: datetime, end: datetime) -> str:
    return f"{format_date(start)} - {format_date(end)}"


def _render_article_html(article: DigestArticle) -> str:
    badges = "".join(f'<span class="topic-badge">{escape(t.name)}</span>' for t in article.topics)
    published = f" &bull; {format_date(article.published_at)}" if article.published_at else ""
    bullets = "\n      ".join(f"<li>{escape(b)}</li>" for b in article.summary_bullets)
    return f"""
  <div class="article">
    <h3><a href="{escape(article.url)}">{escape(article.title)}</a></h3>
    <div class="topics">{badges}</div>
    <div class="meta"><strong>{escape(article.source)}</strong>{published}</div>
    <ul class="bullets">
      {bullets}
    </ul>
    <div class="why-it-matters">
      <strong>Why it matters:</strong> {escape(article.why_it_matters)}
    </div>
  </div>
"""


def render_html(
    articles: list[DigestArticle],
    start: datetime,
    end: datetime,
    groups: Optional[TopicGroups] = None,
) -> str:
    date_range = escape(format_date_range(start, end))
    parts = [
        "<!DOCTYPE html>\n<html>\n<head>\n  <meta charset=\"utf-8\">\n",
        f"  <title>ESG News Digest - {date_range}</title>\n",
        f"  <style>{HTML_STYLE}  </style>\n</head>\n<body>\n",
        "  <h1>ESG News Digest</h1>\n",
        f"  <p><strong>Period:</strong> {date_range}</p>\n",
    ]

    if not articles:
        parts.append("  <p>No relevant articles in this period.</p>\n")
    elif groups is not None:
        for topic, topic_articles in groups:
            parts.append(f"  <h2>{escape(topic.name)}</h2>\n")
            parts.extend(_render_article_html(a) for a in topic_articles)
    else:
        parts.extend(_render_article_html(a) for a in articles)

    parts.append("</body>\n</html>\n")
    return "".join(parts)


def _render_article_text(article: DigestArticle) -> str:
    lines = [
        f"\n• {article.title}",
        f"  Topics: [{', '.join(t.name for t in article.topics)}]",
    ]
    source_line = f"  Source: {article.source}"
    if article.published_at:
        source_line += f" | {format_date(article.published_at)}"
    lines.append(source_line)
    lines.append(f"  Link: {article.url}")
    lines.append("\n  Key Points:")
    lines.extend(f"    - {bullet}" for bullet in article.summary_bullets)
    lines.append(f"\n  Why it matters: {article.why_it_matters}")
    return "\n".join(lines) + "\n"


def render_text(
    articles: list[DigestArticle],
    start: datetime,
    end: datetime,
    groups: Optional[TopicGroups] = None,
) -> str:
    text = f"ESG NEWS DIGEST\n{'=' * 50}\nPeriod: {format_date_range(start, end)}\n\n"

    if not articles:
        return text + "No relevant articles in this period.\n"

    if groups is not None:
        for topic, topic_articles in groups:
            text += f"\n{topic.name.upper()}\n{'-' * len(topic.name)}\n"
            text += "".join(_render_article_text(a) for a in topic_articles)
        return text

    return text + "".join(_render_article_text(a) for a in articles)
