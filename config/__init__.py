"""
Configuration for the ARP spoofer.
"""

from config.settings import ARPConfig

__all__ = ['ARPConfig']
