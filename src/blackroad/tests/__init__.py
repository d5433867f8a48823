"""Black Road unit and functional tests"""
