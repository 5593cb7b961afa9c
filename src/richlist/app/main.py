"""Application entry point and lifecycle."""

from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from ..core.errors import ConfigError
from ..core.settings import load_settings
from ..gui.main_window import MainWindow


def main() -> int:
    """Start the Qt application."""
    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    app = QApplication(sys.argv)
    window = MainWindow(settings)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
