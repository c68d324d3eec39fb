"""
Infrastructure layer package.

openpyxl workbook adapters, sqlite history, SMTP, run lock, logging and
config loading.
"""
