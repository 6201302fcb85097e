"""evodrive - neuroevolution of obstacle-avoiding cars."""

__version__ = "0.1.0"
