import sys
import logging

from PyQt6.QtCore import Qt, QEvent
from PyQt6.QtGui import QKeySequence, QAction
from PyQt6.QtWidgets import (
    QApplication,
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QGridLayout,
    QLabel,
    QLineEdit,
    QTextEdit,
    QPushButton,
    QScrollArea,
)

from core import format_amount, summarize
from editor import EditorSession

APP_NAME = "Disperse Ledger (PyQt6)"

# Shown by "Show Example" only; never loaded into the ledger.
EXAMPLE_LINES = [
    "0x2CB99F193549681e06C6770dDD5543812B4FaFE8=1",
    "0xEb0D38c92deB969e689CaD4c4Bd6DE93B48C6A2A,50",
    "0x8B3392483BA26D65E331dB86D4F430E9B3814E5e 2.5",
    "0x09ae5A64465c18718a46b3aD946270BD3d97f8Da=10.5",
    "0x71C7656EC7ab88b098defB751B7401B5f6d8976F,3",
]

logger = logging.getLogger(__name__)


class DisperseWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.resize(900, 640)

        self.session = EditorSession()
        self.line_edits = []

        root = QWidget()
        self.setCentralWidget(root)
        main = QVBoxLayout(root)

        main.addWidget(QLabel("Addresses with Amounts"))

        self.lines_host = QWidget()
        self.lines_grid = QGridLayout(self.lines_host)
        self.lines_grid.setAlignment(Qt.AlignmentFlag.AlignTop)
        self.lines_grid.setColumnStretch(1, 1)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.lines_host)
        main.addWidget(scroll, 6)

        hint_row = QHBoxLayout()
        main.addLayout(hint_row)
        hint_row.addWidget(QLabel("Separated by ',' or '='"))
        hint_row.addStretch(1)
        self.btn_example = QPushButton("Show Example")
        self.btn_example.setCheckable(True)
        self.btn_example.toggled.connect(self.toggle_example)
        hint_row.addWidget(self.btn_example)

        self.example_text = QTextEdit()
        self.example_text.setReadOnly(True)
        self.example_text.setPlainText("\n".join(EXAMPLE_LINES))
        self.example_text.setVisible(False)
        main.addWidget(self.example_text, 2)

        self.dup_row = QWidget()
        dup = QHBoxLayout(self.dup_row)
        dup.addWidget(QLabel("Duplicates"))
        dup.addStretch(1)
        self.btn_keep_first = QPushButton("Keep the first one")
        self.btn_keep_first.clicked.connect(self.keep_first)
        self.btn_combine = QPushButton("Combine Balance")
        self.btn_combine.clicked.connect(self.combine_balance)
        dup.addWidget(self.btn_keep_first)
        dup.addWidget(self.btn_combine)
        self.dup_row.setVisible(False)
        main.addWidget(self.dup_row)

        self.errors_text = QTextEdit()
        self.errors_text.setReadOnly(True)
        self.errors_text.setStyleSheet("QTextEdit { color: #D32F2F; border: 1px solid #D32F2F; }")
        self.errors_text.setVisible(False)
        main.addWidget(self.errors_text, 3)

        self.btn_next = QPushButton("Next (Ctrl+B)")
        self.btn_next.clicked.connect(self.validate_ledger)
        main.addWidget(self.btn_next)

        self.status = QLabel("Ready.")
        self.status.setWordWrap(True)
        main.addWidget(self.status)

        self.make_shortcuts()
        self.rebuild_lines()

    def set_status(self, msg: str):
        self.status.setText(msg)

    def make_shortcuts(self):
        mapping = {
            "Ctrl+B": self.validate_ledger,
            "Ctrl+Shift+K": self.keep_first,
            "Ctrl+Shift+M": self.combine_balance,
        }
        for key, fn in mapping.items():
            act = QAction(self)
            act.setShortcut(QKeySequence(key))
            act.triggered.connect(fn)
            self.addAction(act)

    def rebuild_lines(self):
        while self.lines_grid.count():
            item = self.lines_grid.takeAt(0)
            w = item.widget()
            if w is not None:
                w.deleteLater()
        self.line_edits = []

        for i, text in enumerate(self.session.lines):
            num = QLabel(str(i + 1))
            num.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
            num.setStyleSheet("QLabel { color: #757575; font-weight: bold; }")
            le = QLineEdit(text)
            le.installEventFilter(self)
            le.textEdited.connect(lambda value, idx=i: self.session.edit(idx, value))
            self.lines_grid.addWidget(num, i, 0)
            self.lines_grid.addWidget(le, i, 1)
            self.line_edits.append(le)

        self.focus_current()

    def focus_current(self):
        ix = self.session.focused_index
        if 0 <= ix < len(self.line_edits):
            self.line_edits[ix].setFocus()

    def eventFilter(self, obj, event):
        if event.type() == QEvent.Type.KeyPress and obj in self.line_edits:
            ix = self.line_edits.index(obj)
            if event.key() in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
                before = len(self.session.lines)
                self.session.press_enter(ix)
                if len(self.session.lines) != before:
                    self.rebuild_lines()
                else:
                    self.focus_current()
                return True
            if event.key() == Qt.Key.Key_Backspace and obj.text() == "":
                if self.session.press_backspace(ix):
                    self.rebuild_lines()
                return True
            if event.matches(QKeySequence.StandardKey.Paste):
                text = QApplication.clipboard().text()
                # Single-line pastes go into the field as usual.
                if "\n" in text or "\r" in text:
                    n = self.session.paste(ix, text)
                    if n:
                        self.rebuild_lines()
                        self.set_status(f"Pasted {n} line(s).")
                    else:
                        self.set_status("Nothing to paste.")
                    return True
        return super().eventFilter(obj, event)

    def toggle_example(self, checked: bool):
        self.example_text.setVisible(checked)
        self.btn_example.setText("Hide Example" if checked else "Show Example")

    def refresh_diagnostics(self):
        errors = self.session.errors
        self.errors_text.setPlainText("\n".join(errors))
        self.errors_text.setVisible(bool(errors))
        self.dup_row.setVisible(self.session.has_duplicates)

    def validate_ledger(self):
        result = self.session.validate()
        self.refresh_diagnostics()
        if result.has_format_errors:
            self.set_status(f"Validation has {len(result.format_errors)} issue(s).")
        else:
            summary = summarize(self.session.lines)
            msg = f"No validation errors. {summary.recipients} recipient(s), total {format_amount(summary.total)}."
            if summary.skipped:
                msg += f" {summary.skipped} amount(s) too large to total."
            if result.has_duplicates:
                msg += " Resolve duplicates before continuing."
            self.set_status(msg)
        self.focus_current()

    def keep_first(self):
        if not self.session.has_duplicates:
            self.set_status("No duplicates to resolve.")
            return
        self.session.keep_first()
        logger.info("Kept first occurrences: %d line(s) left", len(self.session.lines))
        self.rebuild_lines()
        self.refresh_diagnostics()
        self.set_status(f"Kept first occurrences. Lines: {len(self.session.lines)}")

    def combine_balance(self):
        if not self.session.has_duplicates:
            self.set_status("No duplicates to resolve.")
            return
        self.session.combine_balance()
        logger.info("Combined balances: %d line(s) left", len(self.session.lines))
        self.rebuild_lines()
        self.refresh_diagnostics()
        self.set_status(f"Combined balances. Lines: {len(self.session.lines)}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    w = DisperseWindow()
    w.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
