"""
UI boundary: what the participant sees outside the engine-rendered trials.

Three states are produced here: the "saving, please wait" notice, the exit
notice with the completion code, and (debug only) the raw collected data.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List

SAVING_MESSAGE = '<p> Please wait, your data are being saved.</p>'


def exit_message(completion_code: str, completion_url: str = '', debug: bool = False) -> str:
    """
    Build the exit notice.

    Args:
        completion_code: Code the participant submits for compensation
        completion_url: Redirect target, echoed only in debug mode
        debug: Include the redirect link for inspection
    """
    debugging_text = f'<br /><br />redirect link : {completion_url}' if debug else '<br />'
    return (
        '<p class="text-center align-middle">\n'
        'Please wait. You will be redirected back to Prolific in a few moments.\n'
        '<br /><br />\n'
        'If not, please use the following completion code to ensure compensation '
        f'for this study: {completion_code}\n'
        f'{debugging_text}\n'
        '</p>'
    )


class Display(ABC):
    """
    Abstract participant-facing display.

    Subclasses:
    - ConsoleDisplay: Writes to stdout (pilots, headless runs)
    """

    @abstractmethod
    def show_content(self, html: str):
        """Replace the engine's content area."""
        pass

    @abstractmethod
    def replace_page(self, html: str):
        """Replace the whole page."""
        pass

    @abstractmethod
    def redirect(self, url: str):
        """Send the participant to an external URL."""
        pass

    @abstractmethod
    def display_data(self, records: List[Dict[str, Any]]):
        """Show the collected data for inspection (debug only)."""
        pass


class ConsoleDisplay(Display):
    """
    Display that prints plain-text renditions of each state.
    """

    def __init__(self):
        self.redirected_to = None

    def show_content(self, html: str):
        print(f"[Display] {html_to_text(html)}")

    def replace_page(self, html: str):
        print("=" * 70)
        print(html_to_text(html))
        print("=" * 70)

    def redirect(self, url: str):
        self.redirected_to = url
        print(f"[Display] Redirecting to {url or '(no completion URL configured)'}")

    def display_data(self, records: List[Dict[str, Any]]):
        print(json.dumps(records, indent=2, default=str))


def html_to_text(html: str) -> str:
    """Strip tags and collapse whitespace; <br> becomes a line break."""
    text = re.sub(r'<br\s*/?>', '\n', html)
    text = re.sub(r'<[^>]+>', '', text)
    lines = [' '.join(line.split()) for line in text.splitlines()]
    return '\n'.join(line for line in lines if line)
