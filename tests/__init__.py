"""Tests for the Dyson Pure Cool integration."""
