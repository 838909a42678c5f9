"""Keycloak admin API adapter for the identity directory port."""

from __future__ import annotations

from .client import KeycloakIdentityDirectory

__all__ = ["KeycloakIdentityDirectory"]
