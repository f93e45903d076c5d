"""phpIPAM Address Manager - declarative IP address allocation against phpIPAM."""

__version__ = '1.0.0'
