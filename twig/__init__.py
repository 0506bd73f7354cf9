"""User-space IPv4 echo and time responder driven by pcap files, with UDP ping and time clients."""

__version__ = "0.1.0"