from __future__ import annotations

import logging

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QCheckBox, QComboBox, QDialog, QFormLayout, QHBoxLayout, QLabel,
    QLineEdit, QListWidget, QListWidgetItem, QPushButton, QSlider,
    QSpinBox, QStackedWidget, QVBoxLayout, QWidget,
)

from core.display_config import (
    EMBEDDED_PLAYER_SLIDE, INTERVAL_MAX_SEC, INTERVAL_MIN_SEC,
    SCALE_MAX, SCALE_MIN, DisplayConfig,
)
from core.errors import AuthError, ConfigPersistError
from slideshow.images import scan_images

logger = logging.getLogger(__name__)

PLAYER_SLIDE_LABEL = "Now playing (live player)"


class ConfigDialog(QDialog):
    """
    Edits the shared display configuration. When the gate asks for a login,
    the form is shown first; saving always goes through ConfigStore.persist.
    """
    def __init__(self, app_state, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Display Settings")
        self.resize(520, 560)
        self.app_state = app_state
        self.store = app_state.config_store
        self.gate = app_state.gate

        layout = QVBoxLayout(self)

        self.stack = QStackedWidget()
        layout.addWidget(self.stack, 1)

        # --- page 0: login
        login_page = QWidget()
        login_form = QFormLayout(login_page)
        self.user_edit = QLineEdit(self.gate.identity)
        self.password_edit = QLineEdit()
        self.password_edit.setEchoMode(QLineEdit.EchoMode.Password)
        self.password_edit.returnPressed.connect(self.login)
        self.login_error = QLabel("")
        self.login_error.setStyleSheet("color: #ef4444;")
        self.login_btn = QPushButton("Sign in")
        self.login_btn.clicked.connect(self.login)
        login_form.addRow("User", self.user_edit)
        login_form.addRow("Password", self.password_edit)
        login_form.addRow(self.login_error)
        login_form.addRow(self.login_btn)
        self.stack.addWidget(login_page)

        # --- page 1: settings
        settings_page = QWidget()
        form = QFormLayout(settings_page)

        self.scale_slider = QSlider(Qt.Orientation.Horizontal)
        self.scale_slider.setRange(int(SCALE_MIN * 100), int(SCALE_MAX * 100))
        self.scale_label = QLabel()
        self.scale_slider.valueChanged.connect(lambda v: self.scale_label.setText(f"{v}%"))
        scale_row = QHBoxLayout()
        scale_row.addWidget(self.scale_slider, 1)
        scale_row.addWidget(self.scale_label)
        form.addRow("Scale", scale_row)

        self.background_combo = QComboBox()
        self.background_combo.addItem("Album cover", "cover")
        self.background_combo.addItem("Black", "black")
        form.addRow("Background", self.background_combo)

        self.progress_chk = QCheckBox("Show progress bar")
        form.addRow(self.progress_chk)

        self.mode_combo = QComboBox()
        self.mode_combo.addItem("Now playing", "player")
        self.mode_combo.addItem("Slideshow", "images")
        form.addRow("Display", self.mode_combo)

        self.slide_list = QListWidget()
        self.slide_list.setDragDropMode(QListWidget.DragDropMode.InternalMove)
        self.slide_list.itemChanged.connect(lambda _item: self._refresh_frozen_choices())
        form.addRow(QLabel("Slides (checked slides are cycled; none checked cycles all)"))
        form.addRow(self.slide_list)

        self.rescan_btn = QPushButton("Rescan images")
        self.rescan_btn.clicked.connect(self.rescan)
        form.addRow(self.rescan_btn)

        self.frozen_combo = QComboBox()
        form.addRow("Freeze on", self.frozen_combo)

        self.interval_spin = QSpinBox()
        self.interval_spin.setRange(INTERVAL_MIN_SEC, INTERVAL_MAX_SEC)
        self.interval_spin.setSuffix(" s")
        form.addRow("Slide interval", self.interval_spin)

        self.stack.addWidget(settings_page)

        btn_layout = QHBoxLayout()
        self.logout_btn = QPushButton("Sign out")
        self.logout_btn.clicked.connect(self.logout)
        self.save_btn = QPushButton("Save")
        self.save_btn.clicked.connect(self.save)
        self.cancel_btn = QPushButton("Close")
        self.cancel_btn.clicked.connect(self.reject)
        btn_layout.addWidget(self.logout_btn)
        btn_layout.addStretch(1)
        btn_layout.addWidget(self.save_btn)
        btn_layout.addWidget(self.cancel_btn)
        layout.addLayout(btn_layout)

        self._unsubscribe_user = self.gate.subscribe(self._on_user_changed)
        self._load(self.store.config)

    # ----------------------------
    # Auth
    # ----------------------------

    def _on_user_changed(self, user):
        signed_in = user is not None
        self.stack.setCurrentIndex(1 if signed_in else 0)
        self.save_btn.setEnabled(signed_in)
        self.logout_btn.setVisible(signed_in and self.gate.requires_login)

    def login(self):
        try:
            self.gate.login(self.user_edit.text(), self.password_edit.text())
        except AuthError as e:
            self.login_error.setText(str(e))
            return
        self.password_edit.clear()
        self.login_error.clear()

    def logout(self):
        self.gate.logout()

    # ----------------------------
    # Form <-> config
    # ----------------------------

    def _load(self, config: DisplayConfig):
        self.scale_slider.setValue(int(round(config.scale * 100)))
        self.background_combo.setCurrentIndex(max(0, self.background_combo.findData(config.background_mode)))
        self.progress_chk.setChecked(config.show_progress_bar)
        self.mode_combo.setCurrentIndex(max(0, self.mode_combo.findData(config.display_mode)))
        self.interval_spin.setValue(config.slide_interval_sec)

        slides = list(config.slides)
        if EMBEDDED_PLAYER_SLIDE not in slides:
            slides.append(EMBEDDED_PLAYER_SLIDE)
        for name in scan_images(self.app_state.settings.images_dir):
            if name not in slides:
                slides.append(name)
        self._fill_slides(slides, config.enabled_slides)
        self._refresh_frozen_choices(config.frozen_slide)

    def _fill_slides(self, slides, enabled):
        self.slide_list.blockSignals(True)
        self.slide_list.clear()
        for slide_id in slides:
            label = PLAYER_SLIDE_LABEL if slide_id == EMBEDDED_PLAYER_SLIDE else slide_id
            item = QListWidgetItem(label)
            item.setData(Qt.ItemDataRole.UserRole, slide_id)
            item.setFlags(item.flags() | Qt.ItemFlag.ItemIsUserCheckable | Qt.ItemFlag.ItemIsDragEnabled)
            item.setCheckState(Qt.CheckState.Checked if slide_id in enabled else Qt.CheckState.Unchecked)
            self.slide_list.addItem(item)
        self.slide_list.blockSignals(False)

    def _slides(self) -> list[str]:
        return [self.slide_list.item(i).data(Qt.ItemDataRole.UserRole)
                for i in range(self.slide_list.count())]

    def _enabled(self) -> list[str]:
        return [self.slide_list.item(i).data(Qt.ItemDataRole.UserRole)
                for i in range(self.slide_list.count())
                if self.slide_list.item(i).checkState() == Qt.CheckState.Checked]

    def _refresh_frozen_choices(self, selected=None):
        if selected is None:
            selected = self.frozen_combo.currentData()
        self.frozen_combo.blockSignals(True)
        self.frozen_combo.clear()
        self.frozen_combo.addItem("Nothing (cycle)", None)
        for slide_id in self._slides():
            label = PLAYER_SLIDE_LABEL if slide_id == EMBEDDED_PLAYER_SLIDE else slide_id
            self.frozen_combo.addItem(label, slide_id)
        idx = self.frozen_combo.findData(selected) if selected else 0
        self.frozen_combo.setCurrentIndex(max(0, idx))
        self.frozen_combo.blockSignals(False)

    def rescan(self):
        slides = self._slides()
        enabled = self._enabled()
        found = scan_images(self.app_state.settings.images_dir)
        # drop images that disappeared from the folder, keep the player slide
        slides = [s for s in slides if s == EMBEDDED_PLAYER_SLIDE or s in found]
        slides += [name for name in found if name not in slides]
        self._fill_slides(slides, enabled)
        self._refresh_frozen_choices()
        self.app_state.notify(f"{len(found)} image(s) found", "info")

    def current_config(self) -> DisplayConfig:
        return self.store.config.with_changes(
            scale=self.scale_slider.value() / 100,
            background_mode=self.background_combo.currentData(),
            show_progress_bar=self.progress_chk.isChecked(),
            display_mode=self.mode_combo.currentData(),
            slides=self._slides(),
            enabled_slides=self._enabled(),
            frozen_slide=self.frozen_combo.currentData(),
            slide_interval_sec=self.interval_spin.value(),
        )

    def save(self):
        try:
            self.store.persist(self.current_config())
        except ConfigPersistError as e:
            # the form keeps the edits so the user can retry
            self.app_state.notify(str(e), "error")
            return
        self.app_state.notify("Settings saved", "success")
        self.accept()

    def done(self, result):
        self._unsubscribe_user()
        super().done(result)
