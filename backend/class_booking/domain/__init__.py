"""
Booking core: records, lifecycle rules and the error taxonomy.
Nothing in this package performs I/O.
"""
