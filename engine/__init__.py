"""Signal-chain engine: reverb network, effects, plucked strings, parameters."""
