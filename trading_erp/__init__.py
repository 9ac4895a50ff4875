"""Inventory and landed-cost accounting for a small trading business."""

__version__ = '0.1.0'
