"""Clients for the services a settlement talks to."""
