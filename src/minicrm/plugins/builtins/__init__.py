"""Built-in plugins shipped with minicrm."""
