"""
Vitals Overlay - flux biometriques en direct pour overlays de streaming.

Deux flux independants (frequence cardiaque Stromno, glycemie Dexcom)
normalisent les mesures, conservent un historique borne et les diffusent
aux overlays navigateur via Server-Sent Events.
"""

__version__ = "1.0.0"
