"""统一异常体系

所有业务异常继承 BlockRepoError，CLI 层据此输出友好提示并映射退出码。
构建期告警（不支持的文件类型等）不抛出，作为 BuildWarning 收集到构建结果中。
"""

from __future__ import annotations


class BlockRepoError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ConfigError(BlockRepoError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class NoPathConfiguredError(ConfigError):
    """目标分类没有可用的安装路径"""

    code = "NO_PATH_CONFIGURED"

    def __init__(self, category: str, item: str = "") -> None:
        label = f"{category}/{item}" if item else category
        super().__init__(
            f"分类 '{category}' 未配置安装路径 ({label})，"
            "请在 paths 中配置该分类或通配符 '*'"
        )
        self.category = category


class ValidationError(BlockRepoError):
    """输入数据或清单结构校验失败"""

    code = "VALIDATION_ERROR"


class ParseError(BlockRepoError):
    """注册表 URL 或条目标识格式非法"""

    code = "PARSE_ERROR"


class NoProviderFoundError(ParseError):
    """没有任何 Provider 能处理该注册表 URL"""

    code = "NO_PROVIDER"

    def __init__(self, url: str, supported: list[str]) -> None:
        super().__init__(
            f"无法识别的注册表: {url}，当前支持: {', '.join(supported)}"
        )
        self.url = url


class RegistryNotProvidedError(BlockRepoError):
    """未配置注册表且条目未带注册表前缀"""

    code = "REGISTRY_NOT_PROVIDED"

    def __init__(self, item: str) -> None:
        super().__init__(
            f"未配置任何注册表，条目 '{item}' 必须写成完整形式，"
            f"例如 github/<owner>/<repo>/{item}"
        )


class ProviderFetchError(BlockRepoError):
    """远程拉取失败

    kind 区分失败原因: auth / not_found / http / transport
    """

    code = "PROVIDER_FETCH_ERROR"

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status: int | None = None,
        kind: str = "transport",
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        self.kind = kind


class ManifestFetchError(ProviderFetchError):
    """注册表清单拉取失败"""

    code = "MANIFEST_FETCH_ERROR"


class ItemNotFoundError(BlockRepoError):
    """请求的条目不在已解析的清单中"""

    code = "ITEM_NOT_FOUND"

    def __init__(self, item: str, registry: str = "") -> None:
        where = registry or "任何已配置的注册表"
        super().__init__(f"条目 '{item}' 不存在于 {where}")
        self.item = item
        self.registry = registry


class AmbiguousRegistryError(BlockRepoError):
    """未限定注册表的条目同时存在于多个注册表"""

    code = "AMBIGUOUS_REGISTRY"

    def __init__(self, item: str, candidates: list[str]) -> None:
        super().__init__(
            f"多个注册表都包含 '{item}': {', '.join(candidates)}。"
            f"请使用完整形式，例如 {candidates[0]}/{item}"
        )
        self.item = item
        self.candidates = list(candidates)


class LocalDependencyUnresolvedError(BlockRepoError):
    """相对导入或路径别名指向了注册表目录之外"""

    code = "LOCAL_DEPENDENCY_UNRESOLVED"

    def __init__(self, file_path: str, specifier: str, dirs: list[str]) -> None:
        super().__init__(
            f"{file_path}: '{specifier}' 引用了不在 {', '.join(dirs)} 中的代码，无法解析"
        )
        self.file_path = file_path
        self.specifier = specifier


class FileSyntaxError(BlockRepoError):
    """文件语法严重错误，无法提取导入"""

    code = "FILE_SYNTAX_ERROR"

    def __init__(self, file_path: str, reason: str) -> None:
        super().__init__(f"{file_path}: 语法错误 - {reason}")
        self.file_path = file_path


class InvalidLocalDependencyError(BlockRepoError):
    """条目依赖的本地条目不存在于同一清单中"""

    code = "INVALID_LOCAL_DEPENDENCY"


class BuildError(BlockRepoError):
    """构建失败，details 列出每个文件的错误"""

    code = "BUILD_ERROR"


class OperationCancelledError(BlockRepoError):
    """操作被外部取消"""

    code = "CANCELLED"


# =========================================================================
# 构建告警（非致命，不抛出）
# =========================================================================


class BuildWarning(UserWarning):
    """构建告警基类，path 为相关文件"""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path

    @property
    def message(self) -> str:
        return str(self.args[0])


class UnsupportedFileTypeWarning(BuildWarning):
    """没有语言解析器支持该文件类型，文件被跳过"""


class SkippedPathWarning(BuildWarning):
    """嵌套目录或未启用的文档文件被跳过"""


class InvalidPackageNameWarning(BuildWarning):
    """导入既不是合法包名也不是路径别名，已跳过"""
