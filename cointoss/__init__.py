"""
Coin Toss Live Experiment System

A host opens a session, participants flip a coin FLIP_TARGET times and submit
their outcome once, and the host watches the aggregate histogram and an exact
binomial test update as submissions arrive.
"""

FLIP_TARGET = 20

__version__ = "0.1.0"
