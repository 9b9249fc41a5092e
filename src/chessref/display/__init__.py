"""Display adapter process (PyQt6).

Only :mod:`chessref.display.session` is importable without Qt.
"""
