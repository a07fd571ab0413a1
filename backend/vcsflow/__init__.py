"""
VCSFlow - database migration pipelines from VCS pushes.
"""
