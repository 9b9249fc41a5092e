"""chessref: a chess referee driving an engine and a display over pipes.

Quick start::

    python -m chessref -b -a 2       # you play white, the engine plays black
    python -m chessref -w -b -d -a 1 # engine self-play without the display
"""

__version__ = "0.1.0"
