"""Provisioning gateway adapter."""

from __future__ import annotations

from .client import ControlPlaneClient

__all__ = ["ControlPlaneClient"]
