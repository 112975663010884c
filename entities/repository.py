#!/usr/bin/env python3
"""
Entity Repository - Read-only boundary to the student/project store.

The relational store itself lives outside this service. The matcher only
needs lookups by id and candidate enumeration, which EntityRepository
describes. YamlEntityRepository serves the same interface from a YAML or
JSON fixture file and backs the CLI and tests.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

import yaml

from entities.models import Project, Student

logger = logging.getLogger(__name__)


class EntityNotFoundError(Exception):
    """Raised when a student or project id is unknown to the store."""

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class EntityRepository(ABC):
    """
    Abstract interface for the external entity store.
    """

    @abstractmethod
    def get_student(self, student_id: str) -> Student:
        """Return a student or raise EntityNotFoundError."""
        pass

    @abstractmethod
    def get_project(self, project_id: str) -> Project:
        """Return a project or raise EntityNotFoundError."""
        pass

    @abstractmethod
    def list_students(self) -> List[Student]:
        """All students eligible as project candidates."""
        pass

    @abstractmethod
    def list_active_projects(self) -> List[Project]:
        """All projects currently open for recommendations."""
        pass

    def get_students(self, student_ids: Iterable[str]) -> Dict[str, Student]:
        """Batch lookup; unknown ids are omitted from the result."""
        found = {}
        for student_id in student_ids:
            try:
                found[student_id] = self.get_student(student_id)
            except EntityNotFoundError:
                logger.debug(f"Student {student_id} no longer exists, skipping")
        return found

    def get_projects(self, project_ids: Iterable[str]) -> Dict[str, Project]:
        """Batch lookup; unknown ids are omitted from the result."""
        found = {}
        for project_id in project_ids:
            try:
                found[project_id] = self.get_project(project_id)
            except EntityNotFoundError:
                logger.debug(f"Project {project_id} no longer exists, skipping")
        return found


class YamlEntityRepository(EntityRepository):
    """
    In-memory repository loaded from a fixture file.

    Expected layout:

        students:
          - id: s1
            skills: [Python, TensorFlow]
            ...
        projects:
          - id: p1
            required_skills: [Python, PyTorch]
            status: ACTIVE
            ...
    """

    def __init__(
        self,
        students: Optional[Iterable[Student]] = None,
        projects: Optional[Iterable[Project]] = None
    ):
        self._students: Dict[str, Student] = {s.id: s for s in (students or [])}
        self._projects: Dict[str, Project] = {p.id: p for p in (projects or [])}

    @classmethod
    def from_file(cls, path: str) -> "YamlEntityRepository":
        if not os.path.exists(path):
            raise FileNotFoundError(f"Entity file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)

        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Entity file must be a mapping: {path}")

        students = [Student(**item) for item in data.get("students") or []]
        projects = [Project(**item) for item in data.get("projects") or []]
        logger.info(f"Loaded {len(students)} students and {len(projects)} projects from {path}")
        return cls(students, projects)

    def get_student(self, student_id: str) -> Student:
        student = self._students.get(student_id)
        if student is None:
            raise EntityNotFoundError("Student", student_id)
        return student

    def get_project(self, project_id: str) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise EntityNotFoundError("Project", project_id)
        return project

    def list_students(self) -> List[Student]:
        return list(self._students.values())

    def list_active_projects(self) -> List[Project]:
        return [p for p in self._projects.values() if p.is_active]

    def upsert_student(self, student: Student) -> None:
        self._students[student.id] = student

    def upsert_project(self, project: Project) -> None:
        self._projects[project.id] = project
