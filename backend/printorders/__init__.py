"""Order and attachment consistency backend for the print-on-demand store."""
