from __future__ import annotations

import html


def safe_html(text: str | None) -> str:
    return html.escape(str(text or ""), quote=False)


def fmt_compact(v: float | None) -> str:
    """Short money figure for buttons and summaries: 15.0K, 2.5M"""
    if not v:
        return "0"
    if v >= 1_000_000:
        return f"{v / 1_000_000:.1f}M"
    if v >= 1_000:
        return f"{v / 1_000:.1f}K"
    return f"{v:g}"


def fmt_price(v: float | None) -> str:
    if v is None:
        return "N/A"
    return f"${v:.8f}"


def fmt_usd(v: float | None) -> str:
    if not v:
        return "N/A"
    return f"${fmt_compact(v)}"


def humanize_key(key: str) -> str:
    """volumeBuy -> Volume Buy"""
    out = []
    for ch in key:
        if ch.isupper() and out:
            out.append(" ")
        out.append(ch)
    text = "".join(out)
    return text[:1].upper() + text[1:]
