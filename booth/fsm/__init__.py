from .pipeline_fsm import PipelineFSM

__all__ = ["PipelineFSM"]
