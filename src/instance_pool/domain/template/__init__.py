"""Template domain package."""

from instance_pool.domain.template.database_template import DatabaseTemplate
from instance_pool.domain.template.template import InstanceTemplate

__all__ = ["DatabaseTemplate", "InstanceTemplate"]
