"""Dice Catan: a dice-and-build game rules engine with a small HTTP API."""
