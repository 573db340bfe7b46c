"""Static help reply"""

from typing import Any

from chessbot.core.config import SOURCE_URL, VERSION
from chessbot.events.models import notice_content

HELP_TEXT = """COMMANDS:
* new -- start a new game of chess
* help -- show this help

Version {version}. Source code: {source}"""

HELP_HTML = """<b>COMMANDS:</b>
<ul>
<li><b>new</b> &mdash; start a new game of chess</li>
<li><b>help</b> &mdash; show this help</li>
</ul>

Version {version}. <a href="{source}">Source code</a>."""


def help_content() -> dict[str, Any]:
    return notice_content(
        HELP_TEXT.format(version=VERSION, source=SOURCE_URL),
        HELP_HTML.format(version=VERSION, source=SOURCE_URL),
    )
