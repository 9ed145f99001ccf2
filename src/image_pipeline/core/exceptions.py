"""项目内使用的自定义异常定义。"""


class ImagePipelineError(Exception):
    """基础异常类型。"""

    kind = "error"


class InvalidConfigurationError(ImagePipelineError):
    """配置不合法时抛出。"""

    kind = "config"


class DecodeFailure(ImagePipelineError):
    """源字节无法解析为图片。"""

    kind = "decode"


class EncodeFailure(ImagePipelineError):
    """目标格式/质量组合无法编码（例如编码器输出为空）。"""

    kind = "encode"


class InvalidGeometry(ImagePipelineError):
    """解析得到的目标尺寸或采样区域不合法。"""

    kind = "geometry"


class UnsupportedOperation(ImagePipelineError):
    """编排器无法识别的操作类型。"""

    kind = "operation"
