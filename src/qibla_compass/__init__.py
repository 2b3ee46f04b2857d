"""Real-time Qibla compass engine."""

__version__ = "0.1.0"
