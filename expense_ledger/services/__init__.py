"""
Services package.

External collaborators: grid storage (services.storage) and report
delivery (services.delivery). Import from the subpackages directly.
"""
