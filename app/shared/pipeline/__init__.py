"""
Request pipeline package.

An ordered list of stages applied to every HTTP request before it
reaches a router. Each stage continues, terminates with a response,
or fails with an error handed to the error boundary.
"""

from app.shared.pipeline.runner import RequestPipeline
from app.shared.pipeline.stage import Action, RequestContext, Stage, StageOutcome

__all__ = ["Action", "RequestContext", "RequestPipeline", "Stage", "StageOutcome"]
