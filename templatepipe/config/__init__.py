# templatepipe/config/__init__.py
