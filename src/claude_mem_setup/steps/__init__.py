"""Provisioning steps, in pipeline order."""
