"""
Role Induction and Maintenance
==============================

Turns a frame's trigger tokens into typed semantic roles and refines them.

Components:
    - RoleInducer: candidate slots -> reliable slots -> per-type clusters -> roles
    - RoleMaintenance: merge, prune and extend roles after induction

Example:
    >>> from frame_inducer.roles import RoleInducer, RoleMaintenance
    >>> inducer = RoleInducer(tables, lexicon, config)
    >>> inducer.induce_roles(frame)
    >>> RoleMaintenance(inducer).merge_roles(frame)
"""

from .inducer import InductionStage, InductionTrace, RoleInducer
from .maintenance import RoleMaintenance

__all__ = [
    'RoleInducer',
    'RoleMaintenance',
    'InductionStage',
    'InductionTrace',
]
