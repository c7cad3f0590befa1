from blockclaim.handlers import probes, volumeclaim

__all__ = [
    "probes",
    "volumeclaim",
]
