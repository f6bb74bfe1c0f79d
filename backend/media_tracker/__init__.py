"""Client-side session and collection state engine for the media tracker.

The package is library-first: presentation layers build an ``AppContainer``
(see ``media_tracker.bootstrap``) and read state from the stores it wires.
"""

__version__ = "0.1.0"
