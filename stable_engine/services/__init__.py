"""Service modules"""
from .engine import SolvencyEngine
from .guard import ReentrancyGuard

__all__ = ["SolvencyEngine", "ReentrancyGuard"]
