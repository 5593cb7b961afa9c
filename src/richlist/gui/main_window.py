"""Main window UI for the rich list scanner."""

from __future__ import annotations

from loguru import logger
from PySide6.QtCore import QObject, Qt, QTimer, Signal
from PySide6.QtWidgets import (
    QCheckBox,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from ..core.settings import Settings, load_settings
from ..scanner.aggregator import trustline_supply
from ..scanner.ledger_client import LedgerClient
from ..scanner.live_update import LiveUpdateScheduler
from ..scanner.scan_controller import ScanController, ScanStatus
from .models.holders_table_model import HoldersTableModel
from .services.metrics_provider import MetricsMonitor, TokenMetricsProvider
from .widgets.log_panel import LogPanel


class LogEmitter(QObject):
    """Qt-friendly log emitter for loguru."""

    message = Signal(str, str, str)


class ScanSignals(QObject):
    """Carries controller change notifications onto the GUI thread."""

    changed = Signal()


class MainWindow(QMainWindow):
    """Rich list scanner window."""

    METRICS_POLL_MS = 5000

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()
        self.setWindowTitle("CSC Rich List")
        self.resize(1100, 780)
        self._settings = settings or load_settings()
        self._log_emitter = LogEmitter()
        self._scan_signals = ScanSignals()
        self._rendered_result = None

        self._ledger = LedgerClient(self._settings)
        self._metrics_provider = TokenMetricsProvider(self._settings)
        self._metrics_monitor = MetricsMonitor(self._metrics_provider, self._settings.metrics_interval_s)
        self._controller = ScanController(
            self._ledger,
            metrics_source=self._metrics_monitor.snapshot,
            fallback_supply=self._settings.fallback_supply,
        )

        self._build_ui()
        self._sink_id = self._setup_logging()
        self._scan_signals.changed.connect(self._render_state)
        self._controller.add_listener(self._scan_signals.changed.emit)
        self._scheduler = LiveUpdateScheduler(self._controller, delay_s=self._settings.live_update_delay_s)

        self._metrics_timer = QTimer(self)
        self._metrics_timer.setInterval(self.METRICS_POLL_MS)
        self._metrics_timer.timeout.connect(self._render_metrics)
        self._metrics_timer.start()
        self._metrics_monitor.start()

        logger.info("Application started | node={}", self._settings.rpc_url)
        self._render_state()
        self._render_metrics()

    def _build_ui(self) -> None:
        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addLayout(self._build_toolbar())
        layout.addLayout(self._build_status_bar())
        layout.addWidget(self._build_stats_group())
        self._table_model = HoldersTableModel()
        self._table_view = QTableView()
        self._table_view.setModel(self._table_model)
        self._table_view.setAlternatingRowColors(True)
        self._table_view.horizontalHeader().setStretchLastSection(True)
        self._table_view.horizontalHeader().setDefaultSectionSize(140)
        self._table_view.setSelectionBehavior(QTableView.SelectRows)
        layout.addWidget(self._table_view, stretch=3)
        self._log_panel = LogPanel()
        layout.addWidget(self._log_panel, stretch=1)
        self.setCentralWidget(central)

    def _build_toolbar(self) -> QHBoxLayout:
        layout = QHBoxLayout()
        self._start_button = QPushButton("Start Scan")
        self._stop_button = QPushButton("Abort Scan")
        self._live_checkbox = QCheckBox("Live Update")
        self._live_checkbox.setToolTip(
            f"Rescan {self._settings.live_update_delay_s:.0f}s after each completed scan"
        )
        self._exclude_checkbox = QCheckBox("Exclude Issuer")
        self._exclude_checkbox.setToolTip("Leave the issuer wallet out of the next scan's ranking")

        self._start_button.clicked.connect(self._start_scan)
        self._stop_button.clicked.connect(self._stop_scan)
        self._live_checkbox.clicked.connect(self._toggle_live_update)
        self._exclude_checkbox.clicked.connect(self._toggle_exclude_issuer)

        self._price_label = QLabel()
        self._price_label.setAlignment(Qt.AlignRight | Qt.AlignVCenter)

        layout.addWidget(self._start_button)
        layout.addWidget(self._stop_button)
        layout.addSpacing(12)
        layout.addWidget(self._live_checkbox)
        layout.addWidget(self._exclude_checkbox)
        layout.addStretch()
        layout.addWidget(self._price_label)
        return layout

    def _build_status_bar(self) -> QHBoxLayout:
        layout = QHBoxLayout()
        self._status_label = QLabel()
        self._error_label = QLabel()
        self._error_label.setStyleSheet("color: #f56565;")
        layout.addWidget(self._status_label)
        layout.addSpacing(12)
        layout.addWidget(self._error_label)
        layout.addStretch()
        return layout

    def _build_stats_group(self) -> QGroupBox:
        group = QGroupBox("Summary")
        layout = QHBoxLayout(group)
        self._holders_label = QLabel()
        self._supply_label = QLabel()
        self._updated_label = QLabel()
        layout.addWidget(self._holders_label)
        layout.addSpacing(24)
        layout.addWidget(self._supply_label)
        layout.addSpacing(24)
        layout.addWidget(self._updated_label)
        layout.addStretch()
        return group

    def _setup_logging(self) -> int:
        def sink(message) -> None:
            record = message.record
            self._log_emitter.message.emit(
                record["level"].name,
                record["time"].strftime("%H:%M:%S"),
                record["message"],
            )

        self._log_emitter.message.connect(self._log_panel.append_log)
        return logger.add(sink, level="INFO")

    def _start_scan(self) -> None:
        self._controller.start()

    def _stop_scan(self) -> None:
        self._controller.stop()

    def _toggle_live_update(self) -> None:
        self._controller.toggle_live_update()

    def _toggle_exclude_issuer(self) -> None:
        self._controller.toggle_exclude_issuer()

    def _render_state(self) -> None:
        state = self._controller.state
        scanning = state.status is ScanStatus.SCANNING
        self._start_button.setEnabled(not scanning)
        self._stop_button.setEnabled(scanning)
        self._live_checkbox.setChecked(self._controller.live_update)
        self._exclude_checkbox.setChecked(self._controller.exclude_issuer)
        self._status_label.setText(state.message or "Ready to initiate scan sequence...")
        self._error_label.setText(state.error or "")

        result = self._controller.result
        if result is self._rendered_result:
            return
        self._rendered_result = result
        self._table_model.set_holders(result.holders)
        self._holders_label.setText(f"Holders: {len(result.holders):,}")
        self._supply_label.setText(
            f"Total Supply (Trustlines): {trustline_supply(result.holders):,.0f}"
        )
        updated = result.last_updated.strftime("%H:%M:%S") if result.last_updated else "—"
        self._updated_label.setText(f"Updated: {updated}")

    def _render_metrics(self) -> None:
        metrics = self._metrics_monitor.snapshot()
        price = metrics.price_usd if metrics else 0.0
        self._price_label.setText(f"CSC ${price:.6f}")

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._scheduler.close()
        self._controller.stop()
        self._metrics_timer.stop()
        self._metrics_monitor.stop()
        self._metrics_monitor.join(timeout=2)
        self._metrics_provider.close()
        self._ledger.close()
        logger.remove(self._sink_id)
        super().closeEvent(event)
