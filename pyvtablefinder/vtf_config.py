class vtf_config(object):
    
    text_section = ".text"
    rdata_section = ".rdata"
    show = True
    verbose = False
    
    def __init__(self, text_section=".text", rdata_section=".rdata", show=True, verbose=False):
        self.text_section = text_section
        self.rdata_section = rdata_section
        self.show = show
        self.verbose = verbose
        
    def __repr__(self):
        return (f"vtf_config(text_section={self.text_section!r}, rdata_section={self.rdata_section!r}, "
                f"show={self.show}, verbose={self.verbose})")
