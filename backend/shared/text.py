"""Escaping for user-supplied text stored by the server."""

import html


def escape_markup(value: object) -> str:
    """Escape characters that are significant in HTML markup.

    Display names and chat text pass through here before they are stored, so
    everything the server holds is already safe to render.
    """
    return html.escape(str(value), quote=True)
