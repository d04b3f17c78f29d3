"""Desktop GUI implementation built with PySide6/Qt.

:mod:`gui.scanner_window` renders the controls, :mod:`gui.scanner_controller`
owns the project and drives the :mod:`depthscan.sensors` and
:mod:`depthscan.reconstruction` interfaces, and :mod:`gui.widgets` houses the
live depth preview.
"""
