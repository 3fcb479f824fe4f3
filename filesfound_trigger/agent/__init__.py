"""Remote scan agent.

A small HTTP service started on every remote node with
``filesfound agent start``.  The trigger daemon reaches it through
``triggers.nodes.RemoteTarget`` to check reachability and run scans on the
node's own filesystem.
"""
