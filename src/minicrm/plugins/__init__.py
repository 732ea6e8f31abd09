"""Extension layer — plugins subscribe event handlers via pluggy.

Discovery: entry_points (pip-installed) in the ``minicrm.plugins`` group.
INVARIANT: Plugin failures are warnings, never errors.
"""

from minicrm.plugins.manager import PluginManager

__all__ = ["PluginManager"]
