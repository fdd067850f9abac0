from __future__ import annotations

import os

from codevis.parsing.models import ProjectModel


def sanitize_file_name(file_name: str, repo_root: str) -> str:
    prefix = os.path.abspath(repo_root).rstrip(os.sep) + os.sep
    if file_name.startswith(prefix):
        return file_name[len(prefix) :]
    return file_name


def sanitize_project_model(project: ProjectModel, repo_root: str) -> ProjectModel:
    """把存储根目录前缀去掉，使文件名以仓库 id 开头。纯函数，幂等。"""
    return ProjectModel(
        files=[
            f.model_copy(update={"fileName": sanitize_file_name(f.fileName, repo_root=repo_root)}) for f in project.files
        ]
    )
