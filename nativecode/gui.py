from __future__ import annotations

import logging
from pathlib import Path

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QDoubleValidator
from PyQt6.QtWidgets import (
    QApplication,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from .models import LookupRecord, format_number
from .report import build_lookup_command, describe_result, records_to_markdown, run_recorded_lookup

logger = logging.getLogger(__name__)


class TableLookupWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Table Lookup Inspector")
        self.resize(1000, 600)

        self.records: list[LookupRecord] = []

        root = QWidget()
        root_layout = QVBoxLayout(root)

        top_bar = QHBoxLayout()
        self.open_button = QPushButton("Open file")
        self.open_button.clicked.connect(self.open_file)
        self.path_field = QLineEdit()
        self.path_field.setPlaceholderText("Path of the data file")
        top_bar.addWidget(self.open_button)
        top_bar.addWidget(self.path_field, stretch=1)
        root_layout.addLayout(top_bar)

        form = QFormLayout()
        self.base_dir_field = QLineEdit()
        self.base_dir_field.setPlaceholderText("Directory for relative paths (optional)")
        self.bytes_per_row_field = self._number_field("1")
        self.row_field = self._number_field("0")
        self.column_field = self._number_field("0")
        form.addRow("Base directory", self.base_dir_field)
        form.addRow("Bytes per row", self.bytes_per_row_field)
        form.addRow("Row", self.row_field)
        form.addRow("Column", self.column_field)
        root_layout.addLayout(form)

        run_button = QPushButton("Run lookup")
        run_button.clicked.connect(self.run_lookup)
        root_layout.addWidget(run_button)

        self.history_table = QTableWidget(0, 6)
        self.history_table.setHorizontalHeaderLabels(["Path", "Bytes per row", "Row", "Column", "Offset", "Result"])
        root_layout.addWidget(self.history_table)

        actions = QHBoxLayout()
        copy_button = QPushButton("Copy Markdown")
        copy_button.clicked.connect(self.copy_markdown)
        clear_button = QPushButton("Clear history")
        clear_button.clicked.connect(self.clear_history)
        actions.addWidget(copy_button)
        actions.addWidget(clear_button)
        root_layout.addLayout(actions)

        self.setCentralWidget(root)
        self._build_menu()

    def _number_field(self, default: str) -> QLineEdit:
        field = QLineEdit(default)
        validator = QDoubleValidator(field)
        validator.setNotation(QDoubleValidator.Notation.StandardNotation)
        field.setValidator(validator)
        return field

    def _build_menu(self) -> None:
        save_action = QAction("Save Markdown", self)
        save_action.triggered.connect(self.save_markdown)
        self.menuBar().addAction(save_action)

    def open_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open data file", "", "All Files (*)")
        if not path:
            return
        self.path_field.setText(path)
        self.statusBar().showMessage(f"Selected {Path(path).name} ({Path(path).stat().st_size} bytes)")

    def run_lookup(self) -> None:
        path = self.path_field.text().strip()
        if not path:
            QMessageBox.warning(self, "No file", "Open a file or enter a path first.")
            return
        try:
            bytes_per_row = float(self.bytes_per_row_field.text())
            row = float(self.row_field.text())
            column = float(self.column_field.text())
        except ValueError:
            QMessageBox.warning(self, "Invalid input", "Bytes per row, row and column must be numbers.")
            return

        command = build_lookup_command(
            path,
            bytes_per_row,
            row,
            column,
            base_dir=self.base_dir_field.text().strip() or None,
        )
        logger.info("running %s", command)
        record = run_recorded_lookup(command)
        self.records.append(record)
        self.refresh_history_table()
        self.statusBar().showMessage(describe_result(record.result))

    def refresh_history_table(self) -> None:
        self.history_table.setRowCount(len(self.records))
        for row, record in enumerate(self.records):
            request = record.request
            values = [
                request.path,
                format_number(request.bytes_per_row),
                format_number(request.row),
                format_number(request.column),
                str(record.offset) if record.offset >= 0 else "invalid",
                describe_result(record.result),
            ]
            for col, value in enumerate(values):
                item = QTableWidgetItem(value)
                item.setFlags(item.flags() ^ Qt.ItemFlag.ItemIsEditable)
                self.history_table.setItem(row, col, item)

    def clear_history(self) -> None:
        self.records = []
        self.refresh_history_table()

    def copy_markdown(self) -> None:
        QApplication.clipboard().setText(records_to_markdown(self.records))
        self.statusBar().showMessage("Markdown copied to clipboard")

    def save_markdown(self) -> None:
        markdown = records_to_markdown(self.records)
        path, _ = QFileDialog.getSaveFileName(self, "Save Markdown", "lookups.md", "Markdown (*.md)")
        if not path:
            return
        Path(path).write_text(markdown, encoding="utf-8")
        self.statusBar().showMessage(f"Saved {Path(path).name}")


def run() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    app = QApplication([])
    window = TableLookupWindow()
    window.show()
    app.exec()
