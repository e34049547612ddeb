"""Ghost Guide EPG admin tool: schedule import, conflict checks and day grid."""
