"""Table model for the rich list."""

from __future__ import annotations

from typing import Any, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from ...scanner.aggregator import Holder


class HoldersTableModel(QAbstractTableModel):
    """Qt table model over the published holder list."""

    _headers = [
        "Rank",
        "Account",
        "Label",
        "Balance (CSC)",
        "% Supply",
        "Tier",
    ]
    _numeric_columns = {0, 3, 4}

    def __init__(self) -> None:
        super().__init__()
        self._rows: Sequence[Holder] = ()

    def rowCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        return len(self._rows)

    def columnCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        return len(self._headers)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._rows)):
            return None

        holder = self._rows[index.row()]
        column = index.column()

        if role == Qt.DisplayRole:
            return self.format_cell(holder, column)

        if role == Qt.ToolTipRole and column == 2 and holder.wallet_type:
            return holder.wallet_type.upper()

        if role == Qt.TextAlignmentRole:
            if column in self._numeric_columns:
                return int(Qt.AlignRight | Qt.AlignVCenter)
            return int(Qt.AlignLeft | Qt.AlignVCenter)

        return None

    def headerData(
        self,
        section: int,
        orientation: Qt.Orientation,
        role: int = Qt.DisplayRole,
    ) -> Any:  # type: ignore[override]
        if role != Qt.DisplayRole or orientation != Qt.Horizontal:
            return None
        if 0 <= section < len(self._headers):
            return self._headers[section]
        return None

    def set_holders(self, holders: Sequence[Holder]) -> None:
        """Replace the whole list; rows are never patched individually."""
        self.beginResetModel()
        self._rows = holders
        self.endResetModel()

    @staticmethod
    def format_cell(holder: Holder, column: int) -> str:
        if column == 0:
            return str(holder.rank)
        if column == 1:
            return holder.account
        if column == 2:
            return holder.wallet_label or "—"
        if column == 3:
            return f"{holder.balance:,.2f}"
        if column == 4:
            return f"{holder.percentage:.4f}%"
        if column == 5:
            return holder.tier
        return ""
