"""
KFC Main Application - Live Kubernetes deployment logs using Textual
"""
from typing import Optional

from textual.app import App, ComposeResult
from textual.widgets import Header

from KFC.error_detection.detector import ErrorDetector
from KFC.log_stream.connection import LogClient
from KFC.settings import Settings
from KFC.UI.views.log_viewer import LogViewerView


class KFCApp(App):
    """Kubernetes Follow Console - Terminal UI Application"""

    TITLE = "KFC - Kubernetes Follow Console"
    CSS_PATH = "kfc.tcss"

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
    ]

    def __init__(self, settings: Settings, client: LogClient, detector: Optional[ErrorDetector] = None,
                 render_interval: Optional[float] = None):
        super().__init__()
        self.settings = settings
        self.client = client
        self.detector = detector
        self.render_interval = render_interval

    def compose(self) -> ComposeResult:
        """Compose the main UI layout"""
        yield Header(show_clock=True)

        kwargs = {}
        if self.render_interval is not None:
            kwargs["render_interval"] = self.render_interval
        yield LogViewerView(self.settings, self.client, self.detector, id="log-viewer-view", **kwargs)

    def on_mount(self) -> None:
        target = f"{self.settings.namespace}/{self.settings.deployment}"
        self.sub_title = f"{self.settings.context} · {target}" if self.settings.context else target


def run_app(settings: Settings, client: LogClient, detector: Optional[ErrorDetector] = None) -> Optional[int]:
    """
    Entry point to run the KFC application

    Returns:
        The app's return code (non-zero after a fatal connection failure)
    """
    app = KFCApp(settings, client, detector)
    app.run()
    return app.return_code
