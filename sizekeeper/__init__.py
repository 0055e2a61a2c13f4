"""
SizeKeeper - Remembers the size of application windows.

Run with:  python -m sizekeeper
"""
