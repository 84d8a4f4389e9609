"""Attendance Ledger package.

Organized by feature modules (ledger, sessions, corrections, reports, ...)
with a thin Flask controller layer over service/repository layers.
"""
