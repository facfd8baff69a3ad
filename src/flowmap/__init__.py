"""FlowMap - flow-pair topology and IP enrichment.

Collapses NetFlow records into geolocated address-pair totals for map
rendering and enriches IP addresses with GeoIP, reverse DNS and service
names.
"""

__version__ = "0.1.0"
