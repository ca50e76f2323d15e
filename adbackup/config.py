"""Configuration management for adbackup."""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from ruamel.yaml import YAML

DEFAULT_CONFIG_PATH = Path.home() / ".config/adbackup/config.yaml"


class BackupSettings(BaseModel):
    """Defaults for backup runs."""
    
    model_config = ConfigDict(validate_assignment=True)
    
    applications: bool = Field(default=False, description="Include the APKs in the backup")
    shared_storage: bool = Field(default=False, description="Include the shared storage in the backup")
    system_apps: bool = Field(default=False, description="Include system applications in the backup")
    only_specified_apps: List[str] = Field(
        default_factory=list,
        description="Back up only these packages; empty backs up all"
    )
    keep_container: bool = Field(default=False, description="Keep the .ab file after it has been stored")
    show_progress: bool = Field(default=True, description="Show progress bars")


class AdbackupConfig(BaseModel):
    """Main configuration for adbackup."""
    
    model_config = ConfigDict(validate_assignment=True)
    
    adb_path: str = Field(default="adb", description="Path to ADB binary")
    java_path: str = Field(default="java", description="Path to the Java runtime running abe.jar")
    abe_jar: Path = Field(default=Path("abe.jar"), description="abe.jar location, relative to the working directory")
    store_dir: Optional[Path] = Field(default=None, description="Directory holding the per-device stores")
    work_dir: Path = Field(default=Path("."), description="Directory for intermediate .ab containers")
    
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=Path("adbackup.log"), description="Log file, none to disable")
    
    backup: BackupSettings = Field(default_factory=BackupSettings)


def load_config(config_path: Optional[Path] = None) -> AdbackupConfig:
    """Load configuration from file or create default."""
    
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    
    if config_path.exists():
        yaml = YAML(typ="safe")
        with open(config_path, "r") as f:
            data = yaml.load(f) or {}
        return AdbackupConfig(**data)
    else:
        # Create default config
        config = AdbackupConfig()
        save_config(config, config_path)
        return config


def save_config(config: AdbackupConfig, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    
    config_path.parent.mkdir(parents=True, exist_ok=True)
    
    yaml = YAML()
    yaml.default_flow_style = False
    
    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(mode="json"), f)


def get_config() -> AdbackupConfig:
    """Get the global configuration instance."""
    
    if not hasattr(get_config, "_config"):
        get_config._config = load_config()
    
    return get_config._config
