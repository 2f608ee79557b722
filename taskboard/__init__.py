"""Taco's Task Manager: session-gated Kanban board service."""
