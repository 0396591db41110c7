"""Services module.

This module provides the service layer architecture:
- exceptions: Custom service exceptions
- orders: Order creation, reads and status updates
- files: Upload registration and the file-to-order linking protocol
- maintenance: Garbage collection and reconciliation sweeps
- storage: Blob storage (FileStore protocol and S3 implementation)
- notifications: Post-commit order notifications
"""
