"""Consul Registration Hook (CRH).

Single-shot hook that registers a pod in the local Consul agent and removes it
again on shutdown:
 - resolves the pod from the Kubernetes API, waiting until it has an IP
 - maps container ports or declared port definitions to Consul services
 - composes tags from pod identity, node topology and annotations
 - optionally waits for the pod's own probe endpoint before registering

Intended to run as a postStart / preStop lifecycle hook.
"""
