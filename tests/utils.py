"""Builders for mapping documents used across tests."""


def control_xml(group, key, status, midino, options=("normal",)):
    """Render one <control> element."""
    opts = "".join(f"<{opt}/>" for opt in options)
    return (
        "<control>"
        f"<group>{group}</group><key>{key}</key>"
        f"<status>{status}</status><midino>{midino}</midino>"
        f"<options>{opts}</options>"
        "</control>"
    )


def mapping_xml(controls=(), outputs=(), info=None, scriptfiles=(), controller_id="Test"):
    """Render a full mapping document from pre-rendered parts."""
    info_xml = ""
    if info is not None:
        info_xml = "<info>" + "".join(f"<{k}>{v}</{k}>" for k, v in info.items()) + "</info>"
    files = "".join(
        f'<file filename="{name}" functionprefix="{prefix}"/>' for name, prefix in scriptfiles
    )
    return (
        "<MixxxControllerPreset>"
        f"{info_xml}"
        f'<controller id="{controller_id}">'
        f"<scriptfiles>{files}</scriptfiles>"
        f"<controls>{''.join(controls)}</controls>"
        f"<outputs>{''.join(outputs)}</outputs>"
        "</controller>"
        "</MixxxControllerPreset>"
    )
