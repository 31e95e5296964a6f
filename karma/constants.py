"""
Karma Ledger Protocol Constants

Fixed values shared by the engine, the ledger and the service.
They are not configurable.
"""

# Energy granted by every sunrise (renewal); also the energy cap.
ENERGY_PER_SUNRISE = 2400

# Energy spent by the acting party on each applied interaction.
ENERGY_PER_INTERACTION = 100

# Length of one renewal window.
SECONDS_PER_DAY = 86400
