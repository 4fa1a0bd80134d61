# templatepipe/exceptions.py

class TemplatePipeError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(TemplatePipeError):
    # errors related to configuration.
    pass

class DiscoveryError(TemplatePipeError):
    # errors while reading the source tree.
    pass

class OutputError(TemplatePipeError):
    # errors during output operations.
    pass

class UnsupportedInputError(TemplatePipeError):
    # a streaming file was handed to the orchestrator.
    pass

class PathResolutionError(TemplatePipeError):
    # a file location could not be reduced to a key.
    pass

class UnmatchedStripRuleError(PathResolutionError):
    # no pattern of a strip rule matched and the policy forbids falling back.
    pass

class RegistrationError(TemplatePipeError):
    # a file could not be registered with the templating engine.
    pass

class RenderError(TemplatePipeError):
    # the rendering pass failed; nothing was emitted for the batch.
    pass

class UnresolvableOutputKeyError(RenderError):
    # a rendered key cannot be turned into an output location.
    pass

class BatchStateError(TemplatePipeError):
    # accept or flush called in the wrong state.
    pass

class TemplateError(TemplatePipeError):
    # errors raised by the handlebars engine.
    pass

class TemplateRegistrationError(TemplateError):
    pass

class TemplateRenderError(TemplateError):
    pass
