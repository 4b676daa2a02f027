"""EvidFlow: bulk import of accreditation standards."""

__version__ = "0.1.0"
