# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""trustweb - a personal web of trust for pseudonymous social event networks.

trustweb keeps a local, distance-annotated cache of who the agent follows
and who those contacts follow, and uses it to decide cheaply how far (in
follow hops) any author is from the agent.

Architecture:
  Relays (independent, unreliable endpoints)
    → RelayPool fan-out (publish to all, query all, concatenate)
    → GraphSync (own follow/mute lists, contacts' follow lists)
    → SocialStore (contacts, mutes, graph_cache, sync_state)
    → TrustResolver / TrustFilter (hop distance, mute gating)
    → StreamFilter (line-delimited records in, trusted records out)

CLI entry point: ``trustweb``
"""

__version__ = "0.1.0"
