"""Entities Module - Read-only student/project boundary."""
from entities.models import Student, Project, ProjectStatus
from entities.repository import EntityRepository, EntityNotFoundError, YamlEntityRepository

__all__ = [
    'Student',
    'Project',
    'ProjectStatus',
    'EntityRepository',
    'EntityNotFoundError',
    'YamlEntityRepository',
]
