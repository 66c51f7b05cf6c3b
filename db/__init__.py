"""Persistence for purchases, buyers and module settings"""
from .store import PurchaseStore

__all__ = ["PurchaseStore"]
