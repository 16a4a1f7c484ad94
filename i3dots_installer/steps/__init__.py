from .step_10_cleanup import CleanupStep
from .step_20_install_dependencies import InstallDependenciesStep
from .step_30_install_greeter import InstallGreeterStep
from .step_40_install_fonts import InstallFontsStep
from .step_50_install_configs import InstallConfigsStep
from .step_60_configure_lightdm import ConfigureLightDMStep
from .step_70_set_permissions import SetPermissionsStep

__all__ = [
    "CleanupStep",
    "InstallDependenciesStep",
    "InstallGreeterStep",
    "InstallFontsStep",
    "InstallConfigsStep",
    "ConfigureLightDMStep",
    "SetPermissionsStep",
]
