"""Logging panel widget."""

from __future__ import annotations

from PySide6.QtGui import QColor, QFont, QTextCharFormat, QTextCursor
from PySide6.QtWidgets import QPlainTextEdit

_LEVEL_COLORS = {
    "SUCCESS": "#48bb78",
    "WARNING": "#f6e05e",
    "ERROR": "#f56565",
    "CRITICAL": "#f56565",
    "DEBUG": "#94a3b8",
}


class LogPanel(QPlainTextEdit):
    """Read-only display for loguru records, colored by level."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setReadOnly(True)
        self.setMaximumBlockCount(2000)
        self.setStyleSheet("background-color: #0b0f14; color: #e2e8f0;")

    def append_log(self, level: str, timestamp: str, message: str) -> None:
        level_text = level.upper()
        color = QColor(_LEVEL_COLORS.get(level_text, "#e2e8f0"))
        scroll_bar = self.verticalScrollBar()
        previous_value = scroll_bar.value()
        was_at_bottom = previous_value >= scroll_bar.maximum()

        cursor = self.textCursor()
        cursor.movePosition(QTextCursor.End)
        prefix_format = QTextCharFormat()
        prefix_format.setForeground(color)
        prefix_format.setFontWeight(QFont.Bold)
        message_format = QTextCharFormat()
        message_format.setForeground(color)
        cursor.insertText(f"[{timestamp}] [{level_text}] ", prefix_format)
        cursor.insertText(message + "\n", message_format)

        if was_at_bottom:
            self.setTextCursor(cursor)
            self.ensureCursorVisible()
        else:
            scroll_bar.setValue(previous_value)
