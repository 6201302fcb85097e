"""Controllers and the evolutionary loop."""

from evodrive.ai.network import NeuralNetwork

__all__ = ["NeuralNetwork"]
