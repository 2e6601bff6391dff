"""Workspace persistence — the staging slot under .nit/."""
