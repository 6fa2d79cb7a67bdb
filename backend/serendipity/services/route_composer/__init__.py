"""Cheapest-insertion route composer."""

from .service import insert, insertion_costs, insertion_order, path_length

__all__ = ["insert", "insertion_costs", "insertion_order", "path_length"]
