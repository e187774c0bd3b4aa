"""Clinic application for the MediFlow backend.

The in-memory mock API client, the REST surface over it and the derived
state (inventory, laboratory, prescriptions, documents) computed from it.
"""
