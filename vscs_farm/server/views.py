# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""HTML rendering for the farm status page."""

import html

from vscs_farm.session.controller import ContainerSummary


def _contest_input(summary: ContainerSummary) -> str:
    """Render the hidden contestId field of a container's forms."""
    if not summary.contest_id:
        return ""
    value = html.escape(summary.contest_id)
    return f'<input type="hidden" name="contestId" value="{value}">'


def render_container(summary: ContainerSummary) -> str:
    """Render one container card with Start/Stop/Remove forms.

    Args:
        summary: Container to render.

    Returns:
        HTML string for the container card.
    """
    hidden = _contest_input(summary)
    return f"""<div class="container-card" id="{html.escape(summary.name)}">
    <div>
        <h2>{html.escape(summary.title)}</h2>
        <p class="status">{html.escape(summary.status)}</p>
    </div>
    <div class="actions">
        <form action="/start" method="get">{hidden}
            <button class="btn start">Start</button>
        </form>
        <form action="/stop" method="post">{hidden}
            <button class="btn stop">Stop</button>
        </form>
        <form action="/remove" method="post">{hidden}
            <button class="btn remove">Remove</button>
        </form>
    </div>
</div>"""


def render_empty_state() -> str:
    """Render the placeholder shown when the user has no containers."""
    return """<div class="empty">
    <p>No container is created</p>
    <a class="btn launch" href="/start">Launch Container</a>
</div>"""


def render_index(containers: list[ContainerSummary]) -> str:
    """Render the status page listing the caller's containers.

    Args:
        containers: Containers owned by the caller.

    Returns:
        HTML string for the status page.
    """
    if containers:
        body = "\n".join(render_container(c) for c in containers)
    else:
        body = render_empty_state()

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>OpenVSCode Farm</title>
    <style>
        * {{ box-sizing: border-box; }}
        body {{
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto,
                         "Helvetica Neue", Arial, sans-serif;
            margin: 0;
            background: #f3f4f6;
            color: #1f2937;
        }}
        header {{
            background: #1e293b;
            color: #fff;
            padding: 16px 24px;
            text-align: center;
            font-size: 24px;
            font-weight: 700;
        }}
        main {{
            max-width: 960px;
            margin: 0 auto;
            padding: 32px 16px;
        }}
        .container-card, .empty {{
            background: #fff;
            border-radius: 8px;
            box-shadow: 0 1px 4px rgba(0, 0, 0, 0.1);
            padding: 24px;
            margin-bottom: 16px;
        }}
        .container-card {{
            display: flex;
            justify-content: space-between;
            align-items: center;
        }}
        .empty {{ text-align: center; }}
        h2 {{ margin: 0; font-size: 18px; }}
        .status {{ margin: 4px 0 0; font-size: 14px; color: #4b5563; }}
        .actions {{ display: flex; gap: 8px; }}
        form {{ margin: 0; padding: 0; }}
        .btn {{
            display: inline-block;
            padding: 8px 16px;
            border: none;
            border-radius: 4px;
            color: #fff;
            font-weight: 700;
            text-decoration: none;
            cursor: pointer;
        }}
        .start {{ background: #22c55e; }}
        .stop {{ background: #ef4444; }}
        .remove {{ background: #6b7280; }}
        .launch {{ background: #3b82f6; padding: 12px 24px; }}
    </style>
</head>
<body>
    <header>OpenVSCode Farm</header>
    <main>
{body}
    </main>
</body>
</html>"""
