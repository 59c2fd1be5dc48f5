"""Read-only query selectors.  Selectors never add, delete, flush or commit."""

from pdr_kernel.selectors.pdr_selector import PDRSelector

__all__ = ["PDRSelector"]
