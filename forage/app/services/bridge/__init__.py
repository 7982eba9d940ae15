"""
Correlation bridge to the sandbox plugin.
"""

from .plugin_bridge import PluginBridge

__all__ = ["PluginBridge"]
