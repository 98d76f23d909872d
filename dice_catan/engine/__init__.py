"""
Dice Catan rules engine
Turn, resource, build and scoring rules without web framework or database.
"""

DICE_SIDES = 6
