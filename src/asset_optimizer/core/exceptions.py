"""项目内使用的自定义异常定义。"""


class AssetOptimizerError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(AssetOptimizerError):
    """配置不合法时抛出。"""


class InputFolderError(AssetOptimizerError):
    """输入目录不存在或不是目录时抛出。"""


class InvalidArgumentsError(AssetOptimizerError):
    """命令行参数组合不合法时抛出。"""


class UnsupportedFormatError(AssetOptimizerError):
    """文件格式无法识别，调用方应按原样透传该文件。"""
