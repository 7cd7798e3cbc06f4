"""Native-shell auth and push-token bridge for hybrid apps."""
