"""Options for ``adb backup``."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class BackupOptions(BaseModel):
    """Selects what ``adb backup`` includes in the container."""
    
    model_config = ConfigDict(frozen=True)
    
    applications: bool = Field(default=False, description="Include the APKs (-apk)")
    shared_storage: bool = Field(default=False, description="Include the shared storage (-shared)")
    system_apps: bool = Field(default=False, description="Include system applications (-system)")
    only_specified_apps: List[str] = Field(
        default_factory=list,
        description="Back up only these packages instead of all (-all)"
    )
    
    def to_args(self) -> List[str]:
        """Translate the options into ``adb backup`` arguments."""
        args = [
            "-apk" if self.applications else "-noapk",
            "-shared" if self.shared_storage else "-noshared",
            "-system" if self.system_apps else "-nosystem",
        ]
        
        if self.only_specified_apps:
            args += self.only_specified_apps
        else:
            args.append("-all")
        
        return args
