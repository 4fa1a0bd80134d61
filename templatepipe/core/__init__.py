# templatepipe/core/__init__.py
