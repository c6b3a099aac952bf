"""
Queue worker module.
Consumes queued store jobs from a named connection.
"""
