"""
pyvtablefinder report
Text and JSON-ready views of a detection run
"""


class vtf_report_t(object):
    """Formats the vtables and cross-references held by a context"""
    
    def __init__(self, context):
        self.context = context
        
    def generate_text_report(self):
        """Generate a plain text report of the detection results"""
        vtables = self.context.vtables
        lines = ["pyvtablefinder results", ""]
        
        if not vtables:
            lines.append("No vtables found in the binary.")
            return "\n".join(lines)
        
        total_refs = sum(len(self.context.xrefs.get(v) or []) for v in vtables)
        lines.append(f"Vtables found: {len(vtables)}")
        lines.append(f"Code references: {total_refs}")
        lines.append("")
        
        for vtable in vtables:
            refs = self.context.xrefs.get(vtable) or []
            lines.append(f"0x{vtable:x}  {len(refs)} xref(s): {' '.join(f'0x{r:x}' for r in refs)}")
        
        return "\n".join(lines)
    
    def to_dict(self):
        """JSON serialisable view, addresses as hex strings"""
        return {
            "pointer_size": self.context.pointer_size,
            "vtables": [
                {
                    "address": hex(vtable),
                    "xrefs": [hex(r) for r in (self.context.xrefs.get(vtable) or [])],
                }
                for vtable in self.context.vtables
            ],
        }
