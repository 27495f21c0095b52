"""Printer session control and print job orchestration."""

from posbridge.controllers.print_operation import PrintOperation, print_bitmap, printer_job
from posbridge.controllers.printer_session import PrinterSession

__all__ = ["PrinterSession", "PrintOperation", "printer_job", "print_bitmap"]
