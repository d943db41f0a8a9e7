"""
Response Rendering
==================

HTML rendering of triage results, used for browser clients and for
forum replies.
"""

from html import escape

from minion.triage.domain import Guidance, Response

LINE_BREAK = "<br/>"


def ticket_link(ticket_id: str, browse_url: str) -> str:
    return f'<a href="{browse_url}/{escape(ticket_id)}">{escape(ticket_id)}</a>'


def render_text(result: Response, browse_url: str) -> str:
    """Plain-text variant of render_html, one item per line."""
    if isinstance(result, Guidance):
        return result.text

    lines = ["JIRA tickets found :"]
    lines += [f"{browse_url}/{ticket_id}" for ticket_id in sorted(result.ticket_ids)]
    lines.append("Products found :")
    lines += [f"{product} - {version}" for product, version in (result.products_versions or {}).items()]
    lines.append("Errors found :")
    lines += list(result.error_messages or [])
    return "\n".join(lines)


def render_html(result: Response, browse_url: str) -> str:
    """
    Render a triage result.

    Guidance is returned as its plain text. Ticket results list the ticket
    links, then the products found, then the errors found.
    """
    if isinstance(result, Guidance):
        return result.text

    tickets = LINE_BREAK.join(ticket_link(t, browse_url) for t in sorted(result.ticket_ids))
    products = LINE_BREAK.join(
        f"{escape(product, quote=False)} - {escape(version, quote=False)}"
        for product, version in (result.products_versions or {}).items()
    )
    errors = LINE_BREAK.join(escape(line, quote=False) for line in result.error_messages or [])

    return (
        f"JIRA tickets found : {tickets}{LINE_BREAK}"
        f"Products found : {products}{LINE_BREAK}"
        f"Errors found : {errors}"
    )
