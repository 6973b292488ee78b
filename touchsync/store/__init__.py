"""Annotation storage."""

from touchsync.store.annotations import AnnotationStore, coerce_surface

__all__ = [
    "AnnotationStore",
    "coerce_surface",
]
