"""Servicio de ingesta y analítica de mediciones (red → gateway → sensor)."""
