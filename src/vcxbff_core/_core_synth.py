from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from ._core_base import VcxBffError, is_true

TASK_CL = "CL"
TASK_RC = "RC"
TASK_LINK = "LINK"
TASK_LIB = "LIB"


class CommandLineSynthesizer(Protocol):
    def synthesize(self, task: str, suppress: Iterable[str], metadata: Mapping[str, str]) -> str:
        ...


@dataclass(frozen=True)
class Switch:
    name: str
    kind: str
    flag: str = ""
    values: dict[str, str] = field(default_factory=dict)
    quote: bool = False


def flag(name: str, switch: str) -> Switch:
    return Switch(name=name, kind="bool", flag=switch)


def choice(name: str, values: dict[str, str]) -> Switch:
    return Switch(name=name, kind="enum", values=values)


def text(name: str, switch: str, quote: bool = True) -> Switch:
    return Switch(name=name, kind="string", flag=switch, quote=quote)


def many(name: str, switch: str, quote: bool = True) -> Switch:
    return Switch(name=name, kind="list", flag=switch, quote=quote)


def raw(name: str) -> Switch:
    return Switch(name=name, kind="raw")


def precompiled_header(name: str) -> Switch:
    return Switch(name=name, kind="pch")


def _toggle(on: str, off: str) -> dict[str, str]:
    return {"true": on, "false": off}


def _normalize_include_dirs(value: str) -> str:
    return value.replace("\\\\", "\\").replace("\\", "/")


def _split_list(value: str) -> list[str]:
    out: list[str] = []
    for part in value.split(";"):
        entry = part.strip()
        if not entry or entry.startswith("%("):
            continue
        out.append(entry)
    return out


def _format_value(switch: Switch, value: str) -> str:
    if switch.quote:
        return f'{switch.flag}"{value}"'
    return f"{switch.flag}{value}"


class SwitchTable:
    def __init__(self, task: str, switches: list[Switch]) -> None:
        self.task = task
        self.switches = switches

    def render(self, suppress: Iterable[str], metadata: Mapping[str, str]) -> str:
        skipped = set(suppress)
        parts: list[str] = []
        for switch in self.switches:
            if switch.name in skipped:
                continue
            value = metadata.get(switch.name)
            if value is None or not value.strip():
                continue
            value = value.strip()
            if switch.name == "AdditionalIncludeDirectories":
                value = _normalize_include_dirs(value)

            if switch.kind == "bool":
                if is_true(value):
                    parts.append(switch.flag)
            elif switch.kind == "enum":
                rendered = switch.values.get(value)
                if rendered:
                    parts.append(rendered)
            elif switch.kind == "string":
                parts.append(_format_value(switch, value))
            elif switch.kind == "list":
                parts.extend(_format_value(switch, entry) for entry in _split_list(value))
            elif switch.kind == "raw":
                parts.append(value)
            elif switch.kind == "pch":
                header = metadata.get("PrecompiledHeaderFile", "").strip()
                if value == "Create":
                    parts.append(f'/Yc"{header}"' if header else "/Yc")
                elif value == "Use":
                    parts.append(f'/Yu"{header}"' if header else "/Yu")
        return " ".join(part for part in parts if part)


CL_SWITCHES = [
    flag("SuppressStartupBanner", "/nologo"),
    many("AdditionalIncludeDirectories", "/I"),
    many("AdditionalUsingDirectories", "/AI"),
    choice(
        "DebugInformationFormat",
        {"OldStyle": "/Z7", "ProgramDatabase": "/Zi", "EditAndContinue": "/ZI"},
    ),
    flag("SupportJustMyCode", "/JMC"),
    choice(
        "WarningLevel",
        {
            "TurnOffAllWarnings": "/W0",
            "Level1": "/W1",
            "Level2": "/W2",
            "Level3": "/W3",
            "Level4": "/W4",
            "EnableAllWarnings": "/Wall",
        },
    ),
    flag("TreatWarningAsError", "/WX"),
    choice(
        "DiagnosticsFormat",
        {"Caret": "/diagnostics:caret", "Column": "/diagnostics:column", "Classic": "/diagnostics:classic"},
    ),
    flag("SDLCheck", "/sdl"),
    flag("MultiProcessorCompilation", "/MP"),
    choice("Optimization", {"Disabled": "/Od", "MinSpace": "/O1", "MaxSpeed": "/O2", "Full": "/Ox"}),
    choice("InlineFunctionExpansion", {"Disabled": "/Ob0", "OnlyExplicitInline": "/Ob1", "AnySuitable": "/Ob2"}),
    flag("IntrinsicFunctions", "/Oi"),
    choice("FavorSizeOrSpeed", {"Size": "/Os", "Speed": "/Ot"}),
    flag("OmitFramePointers", "/Oy"),
    flag("WholeProgramOptimization", "/GL"),
    many("PreprocessorDefinitions", "/D ", quote=False),
    many("UndefinePreprocessorDefinitions", "/U ", quote=False),
    flag("StringPooling", "/GF"),
    choice("ExceptionHandling", {"Async": "/EHa", "Sync": "/EHsc", "SyncCThrow": "/EHs"}),
    choice(
        "BasicRuntimeChecks",
        {
            "StackFrameRuntimeCheck": "/RTCs",
            "UninitializedLocalUsageCheck": "/RTCu",
            "EnableFastChecks": "/RTC1",
        },
    ),
    choice(
        "RuntimeLibrary",
        {
            "MultiThreaded": "/MT",
            "MultiThreadedDebug": "/MTd",
            "MultiThreadedDLL": "/MD",
            "MultiThreadedDebugDLL": "/MDd",
        },
    ),
    choice("BufferSecurityCheck", _toggle("/GS", "/GS-")),
    flag("FunctionLevelLinking", "/Gy"),
    choice(
        "EnableEnhancedInstructionSet",
        {
            "NoExtensions": "/arch:IA32",
            "StreamingSIMDExtensions": "/arch:SSE",
            "StreamingSIMDExtensions2": "/arch:SSE2",
            "AdvancedVectorExtensions": "/arch:AVX",
            "AdvancedVectorExtensions2": "/arch:AVX2",
        },
    ),
    choice("FloatingPointModel", {"Precise": "/fp:precise", "Strict": "/fp:strict", "Fast": "/fp:fast"}),
    flag("ConformanceMode", "/permissive-"),
    choice("TreatWChar_tAsBuiltInType", _toggle("/Zc:wchar_t", "/Zc:wchar_t-")),
    choice("ForceConformanceInForLoopScope", _toggle("/Zc:forScope", "/Zc:forScope-")),
    choice("RuntimeTypeInfo", _toggle("/GR", "/GR-")),
    choice(
        "LanguageStandard",
        {
            "stdcpp14": "/std:c++14",
            "stdcpp17": "/std:c++17",
            "stdcpp20": "/std:c++20",
            "stdcpplatest": "/std:c++latest",
        },
    ),
    choice("LanguageStandard_C", {"stdc11": "/std:c11", "stdc17": "/std:c17"}),
    flag("OpenMPSupport", "/openmp"),
    precompiled_header("PrecompiledHeader"),
    text("PrecompiledHeaderOutputFile", "/Fp"),
    text("AssemblerListingLocation", "/Fa"),
    text("ObjectFileName", "/Fo"),
    text("ProgramDataBaseFileName", "/Fd"),
    choice("CallingConvention", {"Cdecl": "/Gd", "FastCall": "/Gr", "StdCall": "/Gz", "VectorCall": "/Gv"}),
    many("DisableSpecificWarnings", "/wd", quote=False),
    many("ForcedIncludeFiles", "/FI"),
    flag("ShowIncludes", "/showIncludes"),
    flag("UseFullPaths", "/FC"),
    choice(
        "ErrorReporting",
        {
            "None": "/errorReport:none",
            "Prompt": "/errorReport:prompt",
            "Queue": "/errorReport:queue",
            "Send": "/errorReport:send",
        },
    ),
    raw("AdditionalOptions"),
]

RC_SWITCHES = [
    many("PreprocessorDefinitions", "/D ", quote=False),
    many("UndefinePreprocessorDefinitions", "/u ", quote=False),
    text("Culture", "/l", quote=False),
    flag("IgnoreStandardIncludePath", "/X"),
    flag("ShowProgress", "/v"),
    flag("SuppressStartupBanner", "/nologo"),
    flag("NullTerminateStrings", "/n"),
    many("AdditionalIncludeDirectories", "/I"),
    text("ResourceOutputFileName", "/fo"),
    raw("AdditionalOptions"),
]

_TARGET_MACHINE = {
    "MachineX86": "/MACHINE:X86",
    "MachineX64": "/MACHINE:X64",
    "MachineARM": "/MACHINE:ARM",
    "MachineARM64": "/MACHINE:ARM64",
}

_SUBSYSTEM = {
    "Console": "/SUBSYSTEM:CONSOLE",
    "Windows": "/SUBSYSTEM:WINDOWS",
    "Native": "/SUBSYSTEM:NATIVE",
}

LINK_SWITCHES = [
    text("OutputFile", "/OUT:"),
    choice("ShowProgress", {"LinkVerbose": "/VERBOSE", "LinkVerboseLib": "/VERBOSE:Lib"}),
    text("Version", "/VERSION:", quote=False),
    choice("LinkIncremental", _toggle("/INCREMENTAL", "/INCREMENTAL:NO")),
    flag("SuppressStartupBanner", "/NOLOGO"),
    many("AdditionalLibraryDirectories", "/LIBPATH:"),
    many("AdditionalDependencies", ""),
    flag("IgnoreAllDefaultLibraries", "/NODEFAULTLIB"),
    many("IgnoreSpecificDefaultLibraries", "/NODEFAULTLIB:"),
    text("ModuleDefinitionFile", "/DEF:"),
    many("DelayLoadDLLs", "/DELAYLOAD:"),
    choice(
        "GenerateDebugInformation",
        {"true": "/DEBUG", "DebugFull": "/DEBUG:FULL", "DebugFastLink": "/DEBUG:FASTLINK"},
    ),
    text("ProgramDatabaseFile", "/PDB:"),
    flag("GenerateMapFile", "/MAP"),
    choice("SubSystem", _SUBSYSTEM),
    choice("OptimizeReferences", _toggle("/OPT:REF", "/OPT:NOREF")),
    choice("EnableCOMDATFolding", _toggle("/OPT:ICF", "/OPT:NOICF")),
    choice(
        "LinkTimeCodeGeneration",
        {
            "UseLinkTimeCodeGeneration": "/LTCG",
            "UseFastLinkTimeCodeGeneration": "/LTCG:incremental",
            "PGInstrument": "/LTCG:PGInstrument",
            "PGOptimization": "/LTCG:PGOptimize",
            "PGUpdate": "/LTCG:PGUpdate",
        },
    ),
    text("ProfileGuidedDatabase", "/PGD:"),
    choice("RandomizedBaseAddress", _toggle("/DYNAMICBASE", "/DYNAMICBASE:NO")),
    choice("DataExecutionPrevention", _toggle("/NXCOMPAT", "/NXCOMPAT:NO")),
    text("ImportLibrary", "/IMPLIB:"),
    choice("TargetMachine", _TARGET_MACHINE),
    flag("LinkDLL", "/DLL"),
    flag("TreatLinkerWarningAsErrors", "/WX"),
    choice(
        "LinkErrorReporting",
        {
            "PromptImmediately": "/ERRORREPORT:PROMPT",
            "QueueForNextLogin": "/ERRORREPORT:QUEUE",
            "SendErrorReport": "/ERRORREPORT:SEND",
            "NoErrorReport": "/ERRORREPORT:NONE",
        },
    ),
    raw("AdditionalOptions"),
]

LIB_SWITCHES = [
    text("OutputFile", "/OUT:"),
    many("AdditionalDependencies", ""),
    many("AdditionalLibraryDirectories", "/LIBPATH:"),
    flag("SuppressStartupBanner", "/NOLOGO"),
    text("ModuleDefinitionFile", "/DEF:"),
    flag("IgnoreAllDefaultLibraries", "/NODEFAULTLIB"),
    choice("TargetMachine", _TARGET_MACHINE),
    choice("SubSystem", _SUBSYSTEM),
    flag("LinkTimeCodeGeneration", "/LTCG"),
    flag("TreatLibWarningAsErrors", "/WX"),
    raw("AdditionalOptions"),
]


class MsvcSynthesizer:
    """Builds cl/rc/link/lib switch strings from evaluated item metadata.

    Metadata names that the task does not know are ignored, as are empty
    values. The output is a pure function of ``(task, suppress, metadata)``.
    """

    def __init__(self) -> None:
        self.tables = {
            TASK_CL: SwitchTable(TASK_CL, CL_SWITCHES),
            TASK_RC: SwitchTable(TASK_RC, RC_SWITCHES),
            TASK_LINK: SwitchTable(TASK_LINK, LINK_SWITCHES),
            TASK_LIB: SwitchTable(TASK_LIB, LIB_SWITCHES),
        }

    def synthesize(self, task: str, suppress: Iterable[str], metadata: Mapping[str, str]) -> str:
        table = self.tables.get(task)
        if table is None:
            known = ", ".join(sorted(self.tables))
            raise VcxBffError(f"Unknown toolchain task '{task}'. Known tasks: {known}")
        return table.render(suppress, metadata)
