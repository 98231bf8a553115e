"""RGW account reconciliation.

Keeps a declared Ceph RADOS Gateway user (id, display name, optional bucket
quota) converged with the gateway's admin-ops API, persisting the normalized
state of each managed account in PostgreSQL.
"""
