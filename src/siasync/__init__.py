"""SiaSync - mirror a local folder into a Sia renter and promote healthy uploads."""

__version__ = "0.3.0"
