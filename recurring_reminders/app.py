"""Tray application that delivers reminder notifications."""

import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtWidgets import QApplication, QSystemTrayIcon, QMenu
from PyQt6.QtGui import QIcon, QPixmap, QPainter, QColor, QAction
from PyQt6.QtCore import QObject, pyqtSignal, QTimer

from .config import ConfigManager
from .identifiers import decompose
from .manager import ReminderManager, build_manager
from .sink import InProcessNotificationSink

logger = logging.getLogger(__name__)


class NotificationBridge(QObject):
    """Bridge between the sink thread and the Qt main thread."""
    delivered = pyqtSignal(int, str, str)


class ReminderApp(QObject):
    """
    Main application class that coordinates the reminder system.

    Manages:
    - Configuration loading
    - Notification sink lifecycle
    - Restoring stored reminders into the sink and picking up later changes
    - System tray icon and its messages
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize the ReminderApp.

        Args:
            config_dir: Optional custom config directory path
        """
        super().__init__()

        self.config_manager = ConfigManager(config_dir)
        self.sink: Optional[InProcessNotificationSink] = None
        self.manager: Optional[ReminderManager] = None
        self.tray_icon: Optional[QSystemTrayIcon] = None

        # Sink deliveries arrive on a worker thread
        self.bridge = NotificationBridge()
        self.bridge.delivered.connect(self._on_notification)

        # Picks up reminders changed with the CLI while the tray app runs
        self.refresh_timer = QTimer(self)
        self.refresh_timer.timeout.connect(self.refresh)

    def initialize(self) -> bool:
        """
        Initialize the application.

        Returns:
            True on success
        """
        try:
            general = self.config_manager.load_config()
        except FileNotFoundError as e:
            print(f"Error: {e}")
            print("\nCreating example configuration...")
            self.config_manager.create_example_config()
            print(f"Please edit {self.config_manager.config_file} and restart.")
            return False
        except ValueError as e:
            print(f"Error in configuration: {e}")
            return False

        logging.basicConfig(level=general.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

        self.sink = InProcessNotificationSink(
            deliver=self._deliver_threadsafe,
            check_interval=general.check_interval,
        )
        self.manager = build_manager(
            self.config_manager.database_path,
            self.sink,
            general.tzinfo,
            default_times=general.default_times,
        )

        self._setup_tray()
        self.reload()
        return True

    def reload(self) -> None:
        """Rebuild every scheduled notification from the store."""
        results = self.manager.restore()
        failed = sum(len(result.failures) for result in results.values())
        logger.info("Loaded %d reminders (%d sink failures)", len(results), failed)

    def refresh(self) -> None:
        """Apply reminders added, edited or removed by another process."""
        results = self.manager.refresh()
        failed = sum(len(result.failures) for result in results.values())
        if failed:
            logger.warning("%d sink failures while refreshing reminders", failed)

    def _setup_tray(self):
        """Set up the system tray icon."""
        pixmap = QPixmap(32, 32)
        pixmap.fill(QColor("transparent"))
        painter = QPainter(pixmap)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setBrush(QColor("#4555FF"))
        painter.setPen(QColor("#2F3BB3"))
        painter.drawEllipse(2, 2, 28, 28)
        painter.end()

        self.tray_icon = QSystemTrayIcon(QIcon(pixmap))
        self.tray_icon.setToolTip("Recurring Reminders")

        menu = QMenu()

        title_action = QAction("Recurring Reminders", menu)
        title_action.setEnabled(False)
        menu.addAction(title_action)

        menu.addSeparator()

        show_status = QAction("Show Status", menu)
        show_status.triggered.connect(self._show_status)
        menu.addAction(show_status)

        reload_action = QAction("Reload Reminders", menu)
        reload_action.triggered.connect(self.reload)
        menu.addAction(reload_action)

        menu.addSeparator()

        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self._quit)
        menu.addAction(quit_action)

        self.tray_icon.setContextMenu(menu)
        self.tray_icon.show()

    def _deliver_threadsafe(self, identifier: int, title: str, body: str):
        self.bridge.delivered.emit(identifier, title, body)

    def _on_notification(self, identifier: int, title: str, body: str):
        """Show a fired notification (main thread)."""
        reminder_id, slot_index = decompose(identifier)
        logger.info("Reminder %d slot %d fired: %s", reminder_id, slot_index, title)
        if self.tray_icon is not None:
            self.tray_icon.showMessage(
                title,
                body,
                QSystemTrayIcon.MessageIcon.Information,
                self.config_manager.general.notification_timeout,
            )

    def _show_status(self):
        """Print the next fire time of every scheduled notification."""
        status = self.sink.get_status()
        print("\n=== Scheduled Notifications ===")
        for identifier, info in status.items():
            reminder_id, slot_index = decompose(identifier)
            print(f"[{reminder_id}.{slot_index}] {info['title']}: next at {info['next_fire']}")
        print("=" * 31 + "\n")

    def _quit(self):
        """Quit the application."""
        logger.info("Shutting down...")
        self.refresh_timer.stop()
        if self.sink:
            self.sink.stop()
        if self.manager:
            self.manager.store.close()
        QApplication.quit()

    def run(self):
        """Start delivering notifications."""
        self.sink.start()
        self.refresh_timer.start(int(self.config_manager.general.refresh_interval * 1000))
        print("\nRecurring reminders are running. Use the system tray icon to access options.")
        print("Press Ctrl+C to quit.\n")


def run_app(config_dir: Optional[Path] = None) -> int:
    """Run the tray application until it quits."""
    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)  # Keep running with just tray icon
    app.setApplicationName("Recurring Reminders")

    reminder_app = ReminderApp(config_dir)

    if not reminder_app.initialize():
        return 1

    # Handle SIGINT (Ctrl+C)
    signal.signal(signal.SIGINT, lambda *args: reminder_app._quit())

    # Timer to allow signal handling
    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(500)

    reminder_app.run()

    return app.exec()
