from .export import export_csv, export_excel, export_rows

__all__ = [
    "export_csv",
    "export_excel",
    "export_rows",
]
