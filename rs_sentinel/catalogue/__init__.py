"""Catalogue lookups — client, classification model and the caching classifier."""

from rs_sentinel.catalogue.classifier import CatalogueClassifier
from rs_sentinel.catalogue.client import CatalogueClient
from rs_sentinel.catalogue.models import CLOSED_ENDPOINT, Classification

__all__ = [
    "CLOSED_ENDPOINT",
    "CatalogueClassifier",
    "CatalogueClient",
    "Classification",
]
