"""Submission and progression services: catalog reads, scoring, judgment,
the attempt ledger, player stats and level lifecycle.

Everything here is transport-free; HTTP routes and socket handlers import
these modules and add the request/response and push concerns on top.
"""
