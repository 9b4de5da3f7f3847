"""
Relative positioning host configuration.
"""

# Local player identity
PLAYER_CONFIG = {
    "player_id": None,            # None: taken from each snapshot's localPlayerId
}

# Calibration
CALIBRATION_CONFIG = {
    "required_samples": 15,       # self-measurements averaged per origin epoch
}

# Replay
REPLAY_CONFIG = {
    "default_heading_deg": None,  # None: use each line's "heading" field
    "print_summary": False,       # print metrics summary on exit
}

# Logging
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

# Simulated session (for demos and tests)
SIMULATION_CONFIG = {
    "base_lat": 40.210557,
    "base_lon": -83.029300,
    "base_alt": 0.0,
    "players": {
        "local": {"e": 0.0, "n": 0.0, "u": 0.0},
        "p2": {"e": 0.0, "n": 5.0, "u": 0.0},
        "p3": {"e": 3.0, "n": -4.0, "u": 0.0},
    },
}
