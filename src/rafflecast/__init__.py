"""
RaffleCast - Live Prize Drawing Platform

Runs live prize drawings from an operator control surface and mirrors
every step of the draw to audience-facing displays in real time.
"""

__version__ = "1.0.0"
__author__ = "RaffleCast Contributors"
