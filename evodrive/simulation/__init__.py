"""Physics simulation components."""

from evodrive.simulation.car import Car, CarSnapshot
from evodrive.simulation.obstacle import Obstacle
from evodrive.simulation.ray import Ray
from evodrive.simulation.scheduler import TickScheduler
from evodrive.simulation.world import World

__all__ = ["Car", "CarSnapshot", "Obstacle", "Ray", "TickScheduler", "World"]
