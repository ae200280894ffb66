"""
ec2tester

Configuration lifecycle for EC2 test clusters: default template, environment
overlay, validate-and-default finalization, YAML persistence and the node
authentication ConfigMap reconciliation.
"""

__version__ = "0.1.0"
