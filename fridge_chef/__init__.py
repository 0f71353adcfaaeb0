"""Fridge Chef: turn a photo of food-storage contents into waste-reducing recipes."""

__version__ = "0.1.0"
