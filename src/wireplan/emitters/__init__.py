from wireplan.emitters.renderer import WiringRenderer

__all__ = [
    "WiringRenderer",
]
