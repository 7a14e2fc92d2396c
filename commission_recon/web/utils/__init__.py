"""Web utilities."""

from commission_recon.web.utils.exporters import to_csv, to_xlsx

__all__ = ["to_csv", "to_xlsx"]
