"""HTML rendering for every page the service returns.

Plain f-string templates styled with the Tailwind CDN. Every interpolated
value is escaped here; callers pass raw text.
"""

from __future__ import annotations

import time
from html import escape
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smartreader.models.feed import FeedItem
    from smartreader.models.views import ArticleView, VisitView

TAILWIND = "https://cdn.tailwindcss.com"

_HEAD = (
    '<!DOCTYPE html><html lang="zh-CN"><head><meta charset="UTF-8">'
    '<meta name="viewport" content="width=device-width, initial-scale=1">'
    f'<script src="{TAILWIND}"></script>'
)

_BACK_LINK = (
    '<footer class="p-10 border-t mt-10 text-center"><a href="/" class="bg-black text-white '
    "px-10 py-4 rounded-full text-[10px] font-black tracking-widest uppercase shadow-lg "
    'hover:bg-slate-800 transition-colors">← Back to Feed</a></footer>'
)


def time_ago(timestamp_ms: int, now_ms: int | None = None) -> str:
    """Relative age label used on feed cards."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    diff = (now_ms - timestamp_ms) // 1000
    if diff < 60:
        return "刚刚"
    if diff < 3600:
        return f"{diff // 60}m前"
    if diff < 86400:
        return f"{diff // 3600}h前"
    return f"{diff // 86400}d前"


def _points(points: list[str]) -> str:
    return "".join(f"<li>{escape(point)}</li>" for point in points)


def _summary_box(points: list[str], label: str = "AI 总结") -> str:
    if not points:
        return ""
    return (
        '<div class="bg-red-50 border-l-4 border-red-600 p-5 mb-8 rounded-r-xl shadow-sm relative">'
        '<div class="absolute top-1.5 right-2 opacity-30">'
        f'<span class="text-[7px] font-black uppercase text-red-900 italic">{escape(label)}</span>'
        "</div>"
        '<ul class="space-y-2 list-disc list-inside text-sm font-medium text-red-900">'
        f"{_points(points)}</ul></div>"
    )


def render_home(items: list[FeedItem], now_ms: int | None = None) -> str:
    cards = []
    for item in items:
        image = (
            f'<img src="{escape(item.image)}" class="w-full h-full object-cover" loading="lazy">'
            if item.image
            else ""
        )
        cards.append(
            f'<a href="{escape(item.link)}" data-id="{escape(item.link)}" '
            'class="news-card flex gap-4 p-5 hover:bg-slate-50 transition-all">'
            f'<div class="w-24 h-16 shrink-0 rounded overflow-hidden bg-slate-100">{image}</div>'
            '<div class="flex flex-col justify-between py-0.5">'
            '<h2 class="text-xs font-bold leading-snug text-slate-800 line-clamp-2">'
            f"{escape(item.title)}</h2>"
            '<div class="flex items-center gap-2 mt-2">'
            '<span class="text-[8px] font-black uppercase px-1.5 py-0.5 border rounded '
            f'{escape(item.color)}">{escape(item.source)}</span>'
            '<span class="text-[8px] text-slate-400 font-medium">'
            f"{time_ago(item.timestamp, now_ms)}</span>"
            "</div></div></a>"
        )

    return (
        f"{_HEAD}<style>.is-read {{ opacity: 0.3; filter: grayscale(1); }}</style></head>"
        '<body class="bg-slate-50 min-h-screen font-sans">'
        '<header class="sticky top-0 z-50 bg-white/95 border-b p-4 flex justify-between '
        'items-center shadow-sm"><h1 class="font-black text-xl text-slate-900 uppercase">'
        "SmartNews</h1>"
        "<button onclick=\"if(confirm('Clear history?')){localStorage.clear();location.reload();}\" "
        'class="text-[9px] font-bold text-slate-400 border px-2 py-1 rounded uppercase">'
        "Reset</button></header>"
        f'<main id="feed" class="max-w-md mx-auto divide-y bg-white">{"".join(cards)}</main>'
        "<script>"
        "const syncStatus = () => document.querySelectorAll('.news-card').forEach("
        "c => localStorage.getItem('read_' + c.dataset.id) && c.classList.add('is-read'));"
        "syncStatus();"
        "window.addEventListener('pageshow', (e) => e.persisted && syncStatus());"
        "</script></body></html>"
    )


def render_article(view: ArticleView) -> str:
    image = (
        f'<img src="{escape(view.image_url)}" class="w-full aspect-video object-cover">'
        if view.image_url
        else ""
    )
    meta = " · ".join(value for value in (view.reading_time, view.sentiment) if value)
    meta_html = (
        f'<p class="text-xs text-slate-400 mb-4">{escape(meta)}</p>' if meta else ""
    )
    paragraphs = "".join(f"<p>{escape(text)}</p>" for text in view.paragraphs)

    return (
        f"{_HEAD}</head><body class=\"bg-white\"><div class=\"max-w-xl mx-auto\">{image}"
        '<div class="p-6">'
        '<h1 class="text-2xl font-black mb-6 leading-tight text-slate-900">'
        f"{escape(view.title)}</h1>{meta_html}{_summary_box(view.summary_points)}"
        f'<div class="space-y-6 text-slate-800 leading-relaxed text-lg">{paragraphs}</div>'
        f"</div>{_BACK_LINK}</div>"
        "<script>"
        "setTimeout(() => localStorage.setItem('read_' + window.location.pathname, Date.now()), 1000);"
        "</script></body></html>"
    )


def render_visit(view: VisitView) -> str:
    links = "".join(
        f'<li><a href="{escape(link.href)}" class="text-blue-700 hover:underline">'
        f"{escape(link.label)}</a></li>"
        for link in view.links
    )
    links_html = (
        f'<ul class="space-y-3 text-base text-slate-800">{links}</ul>' if links else ""
    )
    return (
        f'{_HEAD}</head><body class="bg-white"><div class="max-w-xl mx-auto p-6">'
        '<h1 class="text-2xl font-black mb-2 leading-tight text-slate-900">'
        f"{escape(view.title)}</h1>"
        f'<p class="text-xs text-slate-400 mb-6 break-all">{escape(view.source_url)}</p>'
        f"{_summary_box(view.summary_points)}{links_html}{_BACK_LINK}</div></body></html>"
    )


def render_failure_page(message: str, prompt: str | None, raw_response: str | None) -> str:
    """Diagnostic page: exception, prompt and raw model text, verbatim."""
    return (
        '<!DOCTYPE html><html><head><meta charset="UTF-8">'
        f'<script src="{TAILWIND}"></script></head>'
        '<body class="bg-slate-950 text-slate-300 p-6 font-mono text-[10px] '
        'whitespace-pre-wrap break-all"><div class="max-w-4xl mx-auto space-y-6">'
        '<h1 class="text-red-500 text-lg font-black uppercase italic">'
        f"EXCEPTION // {escape(message)}</h1>"
        '<div class="space-y-2"><h2 class="text-blue-500 font-bold uppercase">'
        "[Original Prompt]</h2>"
        '<div class="bg-slate-900 p-4 rounded border border-slate-800 select-all">'
        f"{escape(prompt) if prompt else 'NONE'}</div></div>"
        '<div class="space-y-2"><h2 class="text-green-500 font-bold uppercase">'
        "[Raw AI Response]</h2>"
        '<div class="bg-slate-900 p-4 rounded border border-slate-800 select-all">'
        f"{escape(raw_response) if raw_response else 'NONE'}</div></div>"
        '<a href="/" class="inline-block bg-slate-800 text-white px-8 py-3 rounded-full '
        'font-black uppercase text-[10px]">Return</a>'
        "</div></body></html>"
    )
