"""Prompt builder for model-backed match scoring."""

from entities.models import Project, Student


def _join(values) -> str:
    return ", ".join(v for v in values if v)


def build_match_prompt(student: Student, project: Project) -> str:
    """Build the user prompt for one (student, project) pair.

    Optional fields render as empty strings so the model always sees
    the same set of labels.
    """
    grade = "" if student.grade is None else str(student.grade)
    duration = "" if project.duration_months is None else f"{project.duration_months} months"

    return "\n".join(
        [
            "Analyse how well the following student matches the research project.",
            "",
            "Student:",
            f"- Major: {student.major}",
            f"- Grade: {grade}",
            f"- GPA: {student.gpa:.2f}",
            f"- Skills: {_join(student.skills)}",
            f"- Research interests: {_join(student.research_interests)}",
            f"- Prior projects ({student.project_experience_count}): {'; '.join(student.project_experiences)}",
            f"- Academic background: {student.academic_background}",
            f"- Self introduction: {student.self_introduction}",
            "",
            "Project:",
            f"- Title: {project.title}",
            f"- Description: {project.description}",
            f"- Requirements: {project.requirements}",
            f"- Required skills: {_join(project.required_skills)}",
            f"- Research field: {project.research_field}",
            f"- Duration: {duration}",
            "",
            "Rate skillMatch, interestMatch and experienceMatch (0-100 each), then an overall score (0-100).",
            "Return only the JSON object described in the instructions.",
        ]
    )
