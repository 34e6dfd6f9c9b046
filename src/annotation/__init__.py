"""Annotation models and factories (bbox, polygon, point)."""

from . import factory

__all__ = ['factory']
