"""Sample-data generators."""

from plaza_billing.generators.base import BaseGenerator
from plaza_billing.generators.plaza import PlazaGenerator

__all__ = ["BaseGenerator", "PlazaGenerator"]
