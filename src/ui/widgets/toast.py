from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import Qt, QTimer, QEasingCurve, QPoint, QPropertyAnimation
from PySide6.QtWidgets import (
    QWidget,
    QFrame,
    QLabel,
    QHBoxLayout,
    QToolButton,
    QGraphicsOpacityEffect,
)


@dataclass(frozen=True)
class ToastData:
    message: str
    notify_type: str = "info"  # "info" | "success" | "warn" | "error"
    timeout_ms: int = 3000


_PALETTE = {
    "success": ("#052e1a", "#16a34a"),
    "warn": ("#2a1a05", "#f59e0b"),
    "error": ("#2a0a0a", "#ef4444"),
}


class ToastWidget(QFrame):
    def __init__(self, data: ToastData, manager: "ToastManager"):
        super().__init__(manager)
        self.data = data
        self.manager = manager

        bg, border = _PALETTE.get(data.notify_type, ("#0b1222", "#38bdf8"))
        self.setObjectName("Toast")
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)
        self.setStyleSheet(f"""
        QFrame#Toast {{ background: {bg}; border: 1px solid {border}; border-radius: 14px; }}
        QLabel {{ color: #e5e7eb; font-size: 13px; }}
        QToolButton {{ border: none; background: transparent; color: #e5e7eb; padding: 2px 6px; }}
        """)

        row = QHBoxLayout(self)
        row.setContentsMargins(12, 10, 10, 10)
        row.setSpacing(10)

        self.lbl = QLabel(data.message)
        self.lbl.setWordWrap(True)
        row.addWidget(self.lbl, 1)

        self.btn_close = QToolButton()
        self.btn_close.setText("✕")
        self.btn_close.setCursor(Qt.CursorShape.PointingHandCursor)
        self.btn_close.clicked.connect(lambda: self.manager.dismiss(self))
        row.addWidget(self.btn_close, 0, Qt.AlignmentFlag.AlignTop)

        self._opacity = QGraphicsOpacityEffect(self)
        self._opacity.setOpacity(0.0)
        self.setGraphicsEffect(self._opacity)
        self._anim: Optional[QPropertyAnimation] = None

    def fade(self, start: float, end: float, on_done=None):
        self._anim = QPropertyAnimation(self._opacity, b"opacity", self)
        self._anim.setDuration(180)
        self._anim.setStartValue(start)
        self._anim.setEndValue(end)
        self._anim.setEasingCurve(QEasingCurve.Type.OutCubic)
        if on_done is not None:
            self._anim.finished.connect(on_done)
        self._anim.start()


class ToastManager(QWidget):
    """
    Overlay stacking dismissible messages in the top-right corner of host.
    A message identical to one already on screen only restarts its timer,
    so an error repeated by every poll shows up once.
    """
    def __init__(self, host: QWidget, max_visible: int = 4):
        super().__init__(host)
        self.host = host
        self.max_visible = max_visible
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, False)
        self.setAttribute(Qt.WidgetAttribute.WA_NoSystemBackground, True)

        self._toasts: list[ToastWidget] = []
        self._timers: dict[int, QTimer] = {}
        self._margin = 14
        self._spacing = 10
        self.hide()

    def show_toast(self, message: str, notify_type: str = "info", timeout_ms: int = 3000):
        for t in self._toasts:
            if t.data.message == message and t.data.notify_type == notify_type:
                self._arm_timeout(t)
                return

        data = ToastData(message=message, notify_type=notify_type, timeout_ms=timeout_ms)
        toast = ToastWidget(data, self)
        toast.setFixedWidth(min(420, max(260, self.host.width() // 2)))
        self._toasts.insert(0, toast)

        while len(self._toasts) > self.max_visible:
            self._remove(self._toasts[-1])

        self._layout()
        toast.show()
        toast.fade(0.0, 1.0)
        self._arm_timeout(toast)

    def dismiss(self, toast: ToastWidget):
        if toast not in self._toasts:
            return
        timer = self._timers.pop(id(toast), None)
        if timer is not None:
            timer.stop()
        toast.fade(toast._opacity.opacity(), 0.0, on_done=lambda: self._remove(toast))

    def clear(self):
        for t in list(self._toasts):
            self._remove(t)

    def _arm_timeout(self, toast: ToastWidget):
        timer = self._timers.get(id(toast))
        if timer is None:
            timer = QTimer(toast)
            timer.setSingleShot(True)
            timer.timeout.connect(lambda: self.dismiss(toast))
            self._timers[id(toast)] = timer
        timer.start(max(500, int(toast.data.timeout_ms)))

    def _remove(self, toast: ToastWidget):
        if toast not in self._toasts:
            return
        self._toasts.remove(toast)
        timer = self._timers.pop(id(toast), None)
        if timer is not None:
            timer.stop()
        toast.hide()
        toast.deleteLater()
        self._layout()

    def relayout(self):
        """Call from the host's resizeEvent."""
        self._layout()

    def _layout(self):
        # Only the toast column is covered, the rest of the host keeps its clicks.
        width = max((t.width() for t in self._toasts), default=0) + 2 * self._margin
        y = self._margin
        for t in self._toasts:
            t.adjustSize()
            t.move(QPoint(self._margin, y))
            y += t.sizeHint().height() + self._spacing
        self.setGeometry(self.host.width() - width, 0, width, y)
        self.setVisible(bool(self._toasts))
        self.raise_()
