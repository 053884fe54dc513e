from .gym_env import TableturfEnv

__all__ = ["TableturfEnv"]
