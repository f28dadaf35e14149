"""Fluid Resource Mapper.

Maps a Fluid Dataset to the Kubernetes objects that implement it and reports
what is wrong with the deployment.
"""

__version__ = "1.0.0"
