"""Flash Hold - time-bounded stock reservations, checkout and payment settlement."""

__version__ = "1.0.0"
